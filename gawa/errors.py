"""Erros do relay.

Cada erro de requisição carrega o status HTTP devolvido ao chamador e o
resultado (Outcome) contabilizado nas métricas. Entrada inválida vira 400;
qualquer falha de render/envio vira 500 para que o Alertmanager tente de novo.
"""

from .metrics import Outcome


class RelayError(Exception):
    status_code = 500
    outcome = Outcome.ERRORED


class InvalidNotification(RelayError):
    status_code = 400
    outcome = Outcome.INVALID


class EmptyBodyError(InvalidNotification):
    def __init__(self):
        super().__init__("got empty request body")


class DecodeError(InvalidNotification):
    pass


class UnsupportedVersionError(InvalidNotification):
    def __init__(self, version, supported):
        super().__init__(
            f"do not understand webhook version {version!r}, only version {supported!r} is supported"
        )
        self.version = version
        self.supported = supported


class ForwardError(RelayError):
    pass


class RenderError(ForwardError):
    pass


class TransportError(ForwardError):
    pass


class DownstreamRejectedError(ForwardError):
    def __init__(self, target_url: str, status: int, body: str):
        super().__init__(f"POST to rest target on {target_url!r} returned HTTP {status}: {body}")
        self.target_url = target_url
        self.status_code_downstream = status
        self.body = body


class ConfigError(ValueError):
    """Configuração inválida detectada na inicialização (fatal)."""


class TemplateLoadError(ConfigError):
    pass
