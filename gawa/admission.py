import functools
import logging
import threading
from contextlib import contextmanager

from .errors import ConfigError

logger = logging.getLogger(__name__)


class AdmissionController:
    """Limita quantos relays rodam ao mesmo tempo.

    Sem timeout e sem fila máxima: acima da capacidade a requisição simplesmente
    espera um slot (destino lento = chamador lento, nunca descarta carga).
    """

    def __init__(self, capacity: int):
        if capacity < 1:
            raise ConfigError(f"max concurrent relays must be at least 1, got {capacity}")
        self.capacity = capacity
        self._sema = threading.BoundedSemaphore(capacity)
        self._lock = threading.Lock()
        self._in_flight = 0

    @property
    def in_flight(self) -> int:
        with self._lock:
            return self._in_flight

    def acquire(self):
        if not self._sema.acquire(blocking=False):
            logger.debug("Limite de %d relays concorrentes atingido, aguardando slot", self.capacity)
            self._sema.acquire()
        with self._lock:
            self._in_flight += 1

    def release(self):
        with self._lock:
            self._in_flight -= 1
        self._sema.release()

    @contextmanager
    def slot(self):
        self.acquire()
        try:
            yield
        finally:
            self.release()

    def limit(self, view):
        @functools.wraps(view)
        def wrapper(*args, **kwargs):
            with self.slot():
                return view(*args, **kwargs)
        return wrapper
