import logging
import threading
from typing import Optional

import requests
import urllib3

from .constants import LOG_BODY_MAX, PIPE_BUFFER_BYTES, REQUEST_TIMEOUT_SECONDS, VERSION_STRING
from .errors import DownstreamRejectedError, RenderError, TransportError
from .models import Notification
from .pipe import BytePipe
from .templating import TemplateRenderer

logger = logging.getLogger(__name__)


def _truncate(text: str, limit: int = LOG_BODY_MAX) -> str:
    if len(text) <= limit:
        return text
    return f"{text[:limit]}... ({len(text)} bytes)"


class Relay:
    """Renderiza a notificação e faz um único POST para o destino configurado.

    Com ``chunked=True`` o render roda numa thread própria escrevendo num
    BytePipe e o corpo do POST é o lado de leitura desse pipe (Transfer-Encoding
    chunked). Com ``chunked=False`` o payload é renderizado por inteiro antes
    do envio, com Content-Length fixo.

    Não há retry: qualquer falha sobe como ForwardError e o chamador (o
    Alertmanager) decide reenviar.
    """

    def __init__(
        self,
        target_url: str,
        renderer: TemplateRenderer,
        chunked: bool = True,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        verify_tls: bool = True,
        pipe_capacity: int = PIPE_BUFFER_BYTES,
    ):
        self.target_url = target_url
        self.renderer = renderer
        self.chunked = chunked
        self.timeout = timeout
        self.verify_tls = verify_tls
        self.pipe_capacity = pipe_capacity

        if not verify_tls:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
            logger.warning("Verificação TLS do destino desabilitada (TARGET_VERIFY_TLS=false)")

    def _headers(self):
        return {
            "User-Agent": VERSION_STRING,
            "Content-Type": "application/json",
        }

    def forward(self, record: Notification) -> requests.Response:
        if self.chunked:
            resp = self._post_streamed(record)
        else:
            resp = self._post(self.renderer.render_bytes(record))

        if resp.status_code // 100 != 2:
            body = resp.text
            logger.error(
                "POST para %s retornou HTTP %d: %s",
                self.target_url, resp.status_code, _truncate(body),
            )
            raise DownstreamRejectedError(self.target_url, resp.status_code, body)

        logger.debug("Notificação %s encaminhada para %s (HTTP %d)", record.group_key, self.target_url, resp.status_code)
        return resp

    def _post(self, body) -> requests.Response:
        try:
            return requests.post(
                self.target_url,
                data=body,
                headers=self._headers(),
                timeout=self.timeout,
                verify=self.verify_tls,
                # corpo em streaming não pode ser reenviado; 3xx vira rejeição
                allow_redirects=False,
            )
        except requests.RequestException as exc:
            logger.error("Falha no POST para %s: %s", self.target_url, exc)
            raise TransportError(str(exc)) from exc

    def _post_streamed(self, record: Notification) -> requests.Response:
        pipe = BytePipe(self.pipe_capacity)
        render_thread = threading.Thread(
            target=self.renderer.stream_into,
            args=(record, pipe),
            name="gawa-render",
            daemon=True,
        )
        render_thread.start()
        try:
            return self._post(pipe.chunks())
        except TransportError:
            # o envio pode ter falhado justamente porque o render falhou
            error: Optional[BaseException] = pipe.error
            if isinstance(error, RenderError):
                raise error
            raise
        finally:
            # libera a thread de render se ela ainda estiver escrevendo
            pipe.close_reader()
