"""Carga do template de saída e renderização das notificações.

O template é lido e compilado uma única vez na inicialização; o objeto
compilado é somente leitura e compartilhado entre todas as requisições.
A mesma compilação atende os dois modos de entrega:

- buffer: ``render_bytes`` devolve o payload completo em memória;
- streaming: ``stream_into`` escreve num BytePipe à medida que o Jinja2
  produz o texto, enquanto outra thread envia o que já foi gerado.

Os dois modos usam o mesmo gerador interno do Jinja2, então a saída é
idêntica byte a byte.
"""

import json
import logging
import os
from datetime import datetime, timezone

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError, TemplateNotFound

from .errors import RenderError, TemplateLoadError
from .models import Notification, parse_timestamp
from .pipe import BytePipe

logger = logging.getLogger(__name__)

ENCODING = 'utf-8'


def jsonstr(value) -> str:
    """Escapa o valor para uso dentro de uma string JSON (sem as aspas)."""
    return json.dumps(str(value), ensure_ascii=False)[1:-1]


def quote(value) -> str:
    return json.dumps(str(value), ensure_ascii=False)


def trunc(value, length: int) -> str:
    text = str(value)
    if length < 0:
        return text[length:]
    return text[:length]


def date(value, fmt: str = '%Y-%m-%d %H:%M:%S') -> str:
    if value is None or value == '':
        return ''
    if isinstance(value, str):
        value = parse_timestamp(value)
    return value.strftime(fmt)


def join_labels(labels, sep: str = ' ') -> str:
    return sep.join(f"{k}={v}" for k, v in sorted(labels.items()))


def now() -> datetime:
    return datetime.now(timezone.utc)


def build_environment(search_path: str) -> Environment:
    env = Environment(
        loader=FileSystemLoader(search_path),
        undefined=StrictUndefined,
        keep_trailing_newline=True,
        autoescape=False,
    )
    env.filters['jsonstr'] = jsonstr
    env.filters['quote'] = quote
    env.filters['trunc'] = trunc
    env.filters['date'] = date
    env.filters['join_labels'] = join_labels
    env.globals['now'] = now
    return env


class TemplateRenderer:
    def __init__(self, template):
        self.template = template
        self.name = template.name

    @classmethod
    def from_file(cls, path: str) -> 'TemplateRenderer':
        """Carrega e compila o template; qualquer falha aqui é fatal."""
        directory, name = os.path.split(os.path.abspath(path))
        try:
            template = build_environment(directory).get_template(name)
        except TemplateNotFound as exc:
            raise TemplateLoadError(f"template {path!r} not found") from exc
        except TemplateError as exc:
            raise TemplateLoadError(f"cannot parse template {path!r}: {exc}") from exc
        except OSError as exc:
            raise TemplateLoadError(f"cannot read template {path!r}: {exc}") from exc
        logger.info("Template carregado: %s", path)
        return cls(template)

    def render_bytes(self, record: Notification) -> bytes:
        try:
            return self.template.render(record.template_context()).encode(ENCODING)
        except Exception as exc:
            raise RenderError(f"executing template {self.name!r}: {exc}") from exc

    def stream_into(self, record: Notification, pipe: BytePipe):
        """Renderiza para o pipe e o fecha; roda na thread de render.

        Erro de execução do template fecha o pipe com RenderError, que o
        leitor recebe no lugar do EOF.
        """
        try:
            for piece in self.template.generate(record.template_context()):
                if piece:
                    pipe.write(piece.encode(ENCODING))
        except BrokenPipeError:
            # leitor desistiu (timeout/erro no envio); não há a quem entregar
            logger.debug("Pipe fechado pelo leitor durante o render de %s", self.name)
            return
        except Exception as exc:
            error = RenderError(f"executing template {self.name!r}: {exc}")
            error.__cause__ = exc
            pipe.close_with_error(error)
            return
        pipe.close()
