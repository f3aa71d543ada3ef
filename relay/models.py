import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from .exceptions import PayloadError


def _str_map(value: Any, where: str) -> Dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise PayloadError(f"{where} deve ser um objeto")
    result = {}
    for key, item in value.items():
        if not isinstance(item, str):
            raise PayloadError(f"{where}.{key} deve ser string")
        result[str(key)] = item
    return result


def _str_field(d: Dict[str, Any], key: str, where: str) -> str:
    value = d.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise PayloadError(f"{where}.{key} deve ser string")
    return value


@dataclass(frozen=True)
class Alert:
    status: str = ""
    labels: Dict[str, str] = field(default_factory=dict)
    annotations: Dict[str, str] = field(default_factory=dict)
    starts_at: str = ""
    ends_at: str = ""
    generator_url: str = ""
    fingerprint: str = ""

    @classmethod
    def from_dict(cls, raw: Any, where: str) -> "Alert":
        if not isinstance(raw, dict):
            raise PayloadError(f"{where} deve ser um objeto")
        return cls(
            status=_str_field(raw, "status", where),
            labels=_str_map(raw.get("labels"), f"{where}.labels"),
            annotations=_str_map(raw.get("annotations"), f"{where}.annotations"),
            starts_at=_str_field(raw, "startsAt", where),
            ends_at=_str_field(raw, "endsAt", where),
            generator_url=_str_field(raw, "generatorURL", where),
            fingerprint=_str_field(raw, "fingerprint", where),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "labels": dict(self.labels),
            "annotations": dict(self.annotations),
            "startsAt": self.starts_at,
            "endsAt": self.ends_at,
            "generatorURL": self.generator_url,
            "fingerprint": self.fingerprint,
        }


class Alerts(list):
    """Lista de alertas com os filtros usados pelos templates."""

    def firing(self) -> "Alerts":
        return Alerts(a for a in self if a.status == "firing")

    def resolved(self) -> "Alerts":
        return Alerts(a for a in self if a.status == "resolved")


@dataclass(frozen=True)
class WebhookMessage:
    """
    Payload de webhook do Alertmanager (versão 4).

    ``source`` e ``dingtalk_webhook_url`` não vêm do Alertmanager; são
    preenchidos apenas na cópia enviada ao sink secundário.
    """

    version: str = ""
    group_key: str = ""
    truncated_alerts: int = 0
    status: str = ""
    receiver: str = ""
    group_labels: Dict[str, str] = field(default_factory=dict)
    common_labels: Dict[str, str] = field(default_factory=dict)
    common_annotations: Dict[str, str] = field(default_factory=dict)
    external_url: str = ""
    alerts: Alerts = field(default_factory=Alerts)
    source: str = ""
    dingtalk_webhook_url: str = ""

    @classmethod
    def from_dict(cls, raw: Any) -> "WebhookMessage":
        if not isinstance(raw, dict):
            raise PayloadError("payload deve ser um objeto JSON")

        raw_alerts = raw.get("alerts")
        if raw_alerts is None:
            raw_alerts = []
        if not isinstance(raw_alerts, list):
            raise PayloadError("alerts deve ser uma lista")

        truncated = raw.get("truncatedAlerts", 0)
        if truncated is None:
            truncated = 0
        if isinstance(truncated, bool) or not isinstance(truncated, int):
            raise PayloadError("truncatedAlerts deve ser inteiro")

        return cls(
            version=_str_field(raw, "version", "$"),
            group_key=_str_field(raw, "groupKey", "$"),
            truncated_alerts=truncated,
            status=_str_field(raw, "status", "$"),
            receiver=_str_field(raw, "receiver", "$"),
            group_labels=_str_map(raw.get("groupLabels"), "groupLabels"),
            common_labels=_str_map(raw.get("commonLabels"), "commonLabels"),
            common_annotations=_str_map(raw.get("commonAnnotations"), "commonAnnotations"),
            external_url=_str_field(raw, "externalURL", "$"),
            alerts=Alerts(Alert.from_dict(a, f"alerts[{i}]") for i, a in enumerate(raw_alerts)),
            source=_str_field(raw, "source", "$"),
            dingtalk_webhook_url=_str_field(raw, "dingtalkWebhookUrl", "$"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "groupKey": self.group_key,
            "truncatedAlerts": self.truncated_alerts,
            "status": self.status,
            "receiver": self.receiver,
            "groupLabels": dict(self.group_labels),
            "commonLabels": dict(self.common_labels),
            "commonAnnotations": dict(self.common_annotations),
            "externalURL": self.external_url,
            "alerts": [a.to_dict() for a in self.alerts],
            "source": self.source,
            "dingtalkWebhookUrl": self.dingtalk_webhook_url,
        }


@dataclass(frozen=True)
class Notification:
    title: str
    text: str
    at_mobiles: Tuple[str, ...] = ()
    is_at_all: bool = False
    mention: bool = False

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "msgtype": "markdown",
            "markdown": {"title": self.title, "text": self.text},
        }
        if self.mention:
            at: Dict[str, Any] = {}
            if self.at_mobiles:
                at["atMobiles"] = list(self.at_mobiles)
            if self.is_at_all:
                at["isAtAll"] = True
            payload["at"] = at
        return payload


@dataclass(frozen=True)
class RobotResponse:
    errcode: int = 0
    errmsg: str = ""

    @property
    def ok(self) -> bool:
        return self.errcode == 0

    @classmethod
    def from_dict(cls, raw: Any) -> Optional["RobotResponse"]:
        if not isinstance(raw, dict):
            return None
        code = raw.get("errcode", 0)
        if isinstance(code, bool) or not isinstance(code, int):
            return None
        msg = raw.get("errmsg", "")
        return cls(errcode=code, errmsg=str(msg) if msg is not None else "")


def decode_message(body: bytes) -> WebhookMessage:
    """Decodifica o corpo da requisição; qualquer problema vira PayloadError."""
    try:
        raw = json.loads(body)
    except (ValueError, RecursionError) as exc:
        raise PayloadError(f"JSON inválido: {exc}") from exc
    return WebhookMessage.from_dict(raw)
