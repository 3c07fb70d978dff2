"""Modelos do webhook do Alertmanager e sua decodificação/validação."""

import json
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .constants import SUPPORTED_WEBHOOK_VERSION
from .errors import DecodeError, EmptyBodyError, UnsupportedVersionError

# RFC3339 com fração de até nanossegundos (o Alertmanager envia 9 dígitos)
_RFC3339_RE = re.compile(
    r'^(\d{4}-\d{2}-\d{2})[Tt ](\d{2}:\d{2}:\d{2})(?:\.(\d+))?([Zz]|[+-]\d{2}:\d{2})$'
)


def parse_timestamp(value: str) -> datetime:
    match = _RFC3339_RE.match(value or '')
    if not match:
        raise ValueError(f"invalid timestamp {value!r}")
    day, clock, fraction, offset = match.groups()
    micro = (fraction or '0')[:6].ljust(6, '0')
    if offset in ('Z', 'z'):
        offset = '+00:00'
    return datetime.fromisoformat(f"{day}T{clock}.{micro}{offset}")


def format_timestamp(moment: datetime) -> str:
    return moment.isoformat(timespec='seconds')


class Alert(BaseModel):
    """Alerta individual dentro da notificação."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    status: str = ''
    labels: Dict[str, str] = Field(default_factory=dict)
    annotations: Dict[str, str] = Field(default_factory=dict)
    starts_at: Optional[datetime] = Field(default=None, alias="startsAt")
    ends_at: Optional[datetime] = Field(default=None, alias="endsAt")
    generator_url: str = Field(default='', alias="generatorURL")

    @field_validator('labels', 'annotations', mode='before')
    @classmethod
    def _null_map(cls, value):
        return {} if value is None else value

    @field_validator('starts_at', 'ends_at', mode='before')
    @classmethod
    def _rfc3339(cls, value):
        if value is None or value == '':
            return None
        if isinstance(value, str):
            return parse_timestamp(value)
        return value


class Notification(BaseModel):
    """Payload do webhook (versão 4), imutável depois de carimbado."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    version: str
    receiver: str = ''
    status: Literal['firing', 'resolved']
    alerts: List[Alert] = Field(default_factory=list)
    common_labels: Dict[str, str] = Field(default_factory=dict, alias="commonLabels")
    common_annotations: Dict[str, str] = Field(default_factory=dict, alias="commonAnnotations")
    group_labels: Dict[str, str] = Field(default_factory=dict, alias="groupLabels")
    external_url: str = Field(default='', alias="externalURL")
    group_key: str = Field(default='', alias="groupKey")
    # momento de recebimento, carimbado pelo servidor
    timestamp: str = Field(default='', alias="@timestamp")

    @field_validator('alerts', mode='before')
    @classmethod
    def _null_list(cls, value):
        return [] if value is None else value

    @field_validator('common_labels', 'common_annotations', 'group_labels', mode='before')
    @classmethod
    def _null_map(cls, value):
        return {} if value is None else value

    def to_dict(self) -> Dict[str, Any]:
        """Representação no formato do webhook, incluindo ``@timestamp``."""
        return self.model_dump(mode='json', by_alias=True)

    def template_context(self) -> Dict[str, Any]:
        return {
            'version': self.version,
            'receiver': self.receiver,
            'status': self.status,
            'alerts': list(self.alerts),
            'common_labels': self.common_labels,
            'common_annotations': self.common_annotations,
            'group_labels': self.group_labels,
            'external_url': self.external_url,
            'group_key': self.group_key,
            'timestamp': self.timestamp,
            'payload': self.to_dict(),
        }


def decode_notification(raw: Optional[bytes], now: Optional[datetime] = None) -> Notification:
    """Decodifica e valida o corpo do webhook.

    Levanta EmptyBodyError, DecodeError ou UnsupportedVersionError (todos
    InvalidNotification). O ``@timestamp`` enviado pelo cliente é ignorado e
    substituído pelo horário local do servidor.
    """
    if not raw:
        raise EmptyBodyError()

    try:
        data = json.loads(raw)
    except (ValueError, UnicodeDecodeError, RecursionError) as exc:
        raise DecodeError(str(exc)) from exc

    if not isinstance(data, dict):
        raise DecodeError(f"notification must be a JSON object, got {type(data).__name__}")

    # versão primeiro: payload de outra versão pode ter outro formato
    version = data.get('version')
    if version != SUPPORTED_WEBHOOK_VERSION:
        raise UnsupportedVersionError(version, SUPPORTED_WEBHOOK_VERSION)

    moment = now or datetime.now(timezone.utc).astimezone()
    data['@timestamp'] = format_timestamp(moment)

    try:
        return Notification.model_validate(data)
    except ValidationError as exc:
        raise DecodeError(str(exc)) from exc
