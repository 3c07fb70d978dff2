import threading
from typing import Iterator, Optional


class BytePipe:
    """Pipe de bytes limitado entre um produtor e um consumidor em threads distintas.

    ``write`` bloqueia enquanto o buffer está cheio; ``close`` sinaliza EOF
    para o leitor e ``close_with_error`` faz o leitor levantar a exceção
    informada no lugar do EOF. Se o leitor desistir (``close_reader``), o
    escritor passa a receber BrokenPipeError.
    """

    def __init__(self, capacity: int = 65536):
        if capacity < 1:
            raise ValueError("pipe capacity must be positive")
        self.capacity = capacity
        self._buffer = bytearray()
        self._cond = threading.Condition()
        self._closed = False
        self._reader_closed = False
        self.error: Optional[BaseException] = None

    def write(self, data: bytes) -> int:
        view = memoryview(data)
        written = 0
        with self._cond:
            while written < len(view):
                while len(self._buffer) >= self.capacity and not self._reader_closed:
                    self._cond.wait()
                if self._reader_closed:
                    raise BrokenPipeError("read end of pipe closed")
                if self._closed:
                    raise ValueError("write to closed pipe")
                room = self.capacity - len(self._buffer)
                self._buffer += view[written:written + room]
                written += min(room, len(view) - written)
                self._cond.notify_all()
        return written

    def close(self):
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def close_with_error(self, exc: BaseException):
        with self._cond:
            if self.error is None:
                self.error = exc
            self._closed = True
            self._cond.notify_all()

    def close_reader(self):
        with self._cond:
            self._reader_closed = True
            self._buffer.clear()
            self._cond.notify_all()

    def read(self) -> bytes:
        """Bloqueia até haver dados; retorna b'' no EOF."""
        with self._cond:
            while not self._buffer and not self._closed and not self._reader_closed:
                self._cond.wait()
            if self._buffer:
                chunk = bytes(self._buffer)
                self._buffer.clear()
                self._cond.notify_all()
                return chunk
            if self.error is not None:
                raise self.error
            return b''

    def chunks(self) -> Iterator[bytes]:
        while True:
            chunk = self.read()
            if not chunk:
                return
            yield chunk
