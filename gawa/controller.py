import logging
import time

from flask import Flask, Response, request
from prometheus_client import CONTENT_TYPE_LATEST

from .admission import AdmissionController
from .constants import (
    APPLICATION,
    DISABLE_CHUNKED,
    MAX_CLIENTS,
    PIPE_BUFFER_BYTES,
    POST_TEMPLATE,
    REQUEST_TIMEOUT_SECONDS,
    TARGET_URL,
    TARGET_VERIFY_TLS,
    VERSION_STRING,
)
from .errors import ConfigError, InvalidNotification, RelayError, RenderError
from .metrics import Outcome, RelayMetrics
from .models import decode_notification
from .relay import Relay
from .templating import TemplateRenderer

logger = logging.getLogger(__name__)


def _text(body, status):
    return Response(body, status=status, mimetype='text/plain')


def create_app(
    target_url=None,
    template_path=None,
    max_clients=None,
    disable_chunked=None,
    timeout=None,
    verify_tls=None,
    metrics=None,
):
    """Monta o Flask app; parâmetros omitidos vêm das variáveis de ambiente.

    Levanta ConfigError sem destino configurado e TemplateLoadError se o
    template não compilar: o processo não deve subir nesses casos.
    """
    target_url = target_url if target_url is not None else TARGET_URL
    if not target_url:
        raise ConfigError("Must specify HTTP URL")

    renderer = TemplateRenderer.from_file(template_path or POST_TEMPLATE)
    admission = AdmissionController(max_clients if max_clients is not None else MAX_CLIENTS)
    metrics = metrics or RelayMetrics()
    chunked = not (disable_chunked if disable_chunked is not None else DISABLE_CHUNKED)
    relay = Relay(
        target_url,
        renderer,
        chunked=chunked,
        timeout=timeout if timeout is not None else REQUEST_TIMEOUT_SECONDS,
        verify_tls=verify_tls if verify_tls is not None else TARGET_VERIFY_TLS,
        pipe_capacity=PIPE_BUFFER_BYTES,
    )

    app = Flask(__name__)
    app.extensions['gawa'] = {
        'admission': admission,
        'metrics': metrics,
        'relay': relay,
    }

    @app.route('/health', methods=['GET'])
    def health():
        return {'status': 'ok', 'service': APPLICATION}, 200

    @app.route('/version', methods=['GET'])
    def version():
        return _text(VERSION_STRING, 200)

    @app.route('/metrics', methods=['GET'])
    def prometheus_metrics():
        return Response(metrics.exposition(), status=200, content_type=CONTENT_TYPE_LATEST)

    @app.route('/webhook', methods=['POST'])
    @admission.limit
    def webhook():
        started = time.monotonic()
        metrics.received()
        try:
            record = decode_notification(request.get_data())
            relay.forward(record)
        except RelayError as exc:
            metrics.record(exc.outcome)
            # falhas de transporte e respostas não-2xx já são logadas pelo Relay
            if isinstance(exc, InvalidNotification):
                logger.warning("Notificação inválida de %s: %s", request.remote_addr, exc)
            elif isinstance(exc, RenderError):
                logger.error("Falha no render do template %s: %s", renderer.name, exc)
            status = exc.status_code
            body = str(exc)
        else:
            metrics.record(Outcome.SUCCEEDED)
            status = 200
            body = ''
        metrics.observe_request('webhook', status, time.monotonic() - started)
        return _text(body, status)

    @app.errorhandler(404)
    def not_found(_error):
        logger.info("404 when serving path: %s requested by %s", request.path, request.remote_addr)
        return _text('404: Not found', 404)

    logger.info("%s encaminhando para %s (template=%s, chunked=%s, max_clients=%d)",
                VERSION_STRING, target_url, renderer.name, chunked, admission.capacity)
    return app
