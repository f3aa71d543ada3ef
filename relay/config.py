import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple
from urllib.parse import urlparse

import yaml

from .constants import DEFAULT_TEXT_SOURCE, DEFAULT_TITLE_SOURCE
from .exceptions import ConfigError


@dataclass(frozen=True)
class Mention:
    all: bool = False
    mobiles: Tuple[str, ...] = ()


@dataclass(frozen=True)
class MessageTemplate:
    """Fontes Jinja do título e do texto da mensagem markdown."""

    title: str = DEFAULT_TITLE_SOURCE
    text: str = DEFAULT_TEXT_SOURCE


@dataclass(frozen=True)
class Target:
    name: str
    url: str
    secret: str = ""
    mention: Optional[Mention] = None
    message: Optional[MessageTemplate] = None


@dataclass(frozen=True)
class Config:
    """
    Snapshot imutável do arquivo de configuração.
    Nunca é alterado depois de carregado; a recarga cria outro objeto.
    """

    targets: Mapping[str, Target]
    templates: Tuple[str, ...] = ()
    default_message: MessageTemplate = field(default_factory=MessageTemplate)


def _require_dict(value: Any, where: str) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"esperado um mapa em {where}, recebido {type(value).__name__}")
    return value


def _get_str(d: Dict[str, Any], key: str, where: str, default: str = "") -> str:
    value = d.get(key, default)
    if value is None:
        return default
    if not isinstance(value, str):
        raise ConfigError(f"{where}.{key} deve ser string")
    return value


def _check_keys(d: Dict[str, Any], allowed: Tuple[str, ...], where: str) -> None:
    unknown = sorted(set(d) - set(allowed))
    if unknown:
        raise ConfigError(f"campos desconhecidos em {where}: {', '.join(unknown)}")


def _parse_message(raw: Any, where: str, fallback: MessageTemplate) -> MessageTemplate:
    d = _require_dict(raw, where)
    _check_keys(d, ("title", "text"), where)
    return MessageTemplate(
        title=_get_str(d, "title", where, fallback.title) or fallback.title,
        text=_get_str(d, "text", where, fallback.text) or fallback.text,
    )


def _parse_mention(raw: Any, where: str) -> Mention:
    d = _require_dict(raw, where)
    _check_keys(d, ("all", "mobiles"), where)
    mobiles = d.get("mobiles") or []
    if not isinstance(mobiles, list):
        raise ConfigError(f"{where}.mobiles deve ser uma lista")
    mention_all = d.get("all", False)
    if not isinstance(mention_all, bool):
        raise ConfigError(f"{where}.all deve ser true ou false")
    return Mention(all=mention_all, mobiles=tuple(str(m) for m in mobiles))


def _validate_url(url: str, where: str) -> str:
    try:
        parsed = urlparse(url)
        parsed.port  # porta fora de 0-65535 levanta ValueError
    except ValueError as exc:
        raise ConfigError(f"{where}.url inválida: {url!r} ({exc})") from exc
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigError(f"{where}.url inválida: {url!r}")
    return url


def _parse_target(name: str, raw: Any) -> Target:
    where = f"targets.{name}"
    d = _require_dict(raw, where)
    _check_keys(d, ("url", "secret", "mention", "message"), where)
    url = _get_str(d, "url", where)
    if not url:
        raise ConfigError(f"{where}.url é obrigatória")

    mention = _parse_mention(d["mention"], f"{where}.mention") if d.get("mention") is not None else None
    # message do target herda campos vazios da default_message global no momento do build
    message = None
    if d.get("message") is not None:
        msg = _require_dict(d["message"], f"{where}.message")
        _check_keys(msg, ("title", "text"), f"{where}.message")
        message = MessageTemplate(
            title=_get_str(msg, "title", f"{where}.message"),
            text=_get_str(msg, "text", f"{where}.message"),
        )

    return Target(
        name=name,
        url=_validate_url(url, where),
        secret=_get_str(d, "secret", where),
        mention=mention,
        message=message,
    )


def parse_config(raw: Any, base_dir: str = ".") -> Config:
    root = _require_dict(raw, "$")
    _check_keys(root, ("templates", "default_message", "targets"), "$")

    templates = root.get("templates") or []
    if not isinstance(templates, list):
        raise ConfigError("templates deve ser uma lista de caminhos")
    template_paths = tuple(
        p if os.path.isabs(p) else os.path.normpath(os.path.join(base_dir, p))
        for p in (str(t) for t in templates)
    )

    default_message = _parse_message(root.get("default_message"), "default_message", MessageTemplate())

    raw_targets = _require_dict(root.get("targets"), "targets")
    if not raw_targets:
        raise ConfigError("nenhum target configurado")
    targets = {str(name): _parse_target(str(name), value) for name, value in raw_targets.items()}

    return Config(
        targets=MappingProxyType(targets),
        templates=template_paths,
        default_message=default_message,
    )


def load_config(path: str) -> Config:
    try:
        with open(path, "r", encoding="utf-8") as fp:
            raw = yaml.safe_load(fp)
    except OSError as exc:
        raise ConfigError(f"falha ao ler {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"YAML inválido em {path}: {exc}") from exc

    return parse_config(raw, base_dir=os.path.dirname(os.path.abspath(path)))
