import logging
import os
import re
from datetime import datetime, timezone
from functools import lru_cache
from typing import Dict, Iterable, Optional

import jinja2
from jinja2.runtime import Macro

from .exceptions import ConfigError, RenderError
from .models import WebhookMessage

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE_PATH = os.path.join(os.path.dirname(__file__), "templates", "default.tmpl")

_MARKDOWN_SPECIAL = re.compile(r"([\\`*_\[\]#>|~])")
_FRACTION = re.compile(r"\.(\d{1,9})")


def markdown_escape(value) -> str:
    return _MARKDOWN_SPECIAL.sub(r"\\\1", str(value))


def re_replace_all(value, pattern: str, repl: str) -> str:
    return re.sub(pattern, repl, str(value))


def format_date(value, fmt: str = "%Y-%m-%d %H:%M:%S", tz: Optional[str] = None) -> str:
    """
    Formata um timestamp RFC3339 do Alertmanager (ex: 2025-10-08T16:29:55.933582749Z).
    Frações com mais de 6 dígitos são cortadas; ``tz="local"`` converte para o fuso do processo.
    """
    if not value:
        return ""
    raw = str(value).replace("Z", "+00:00")
    raw = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), raw, count=1)
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return str(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    if tz == "local":
        parsed = parsed.astimezone()
    elif tz == "utc":
        parsed = parsed.astimezone(timezone.utc)
    return parsed.strftime(fmt)


def _new_environment() -> jinja2.Environment:
    env = jinja2.Environment(
        undefined=jinja2.StrictUndefined,
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        extensions=["jinja2.ext.do"],
    )
    env.filters["markdown"] = markdown_escape
    env.filters["re_replace_all"] = re_replace_all
    env.filters["date"] = format_date
    return env


class Template:
    """
    Conjunto de templates compilado para uma geração da configuração.

    Todos os macros públicos dos arquivos carregados viram globais do
    ambiente; a fonte do título/texto de cada target chama esses macros.
    Depois de ``load`` o ambiente não é mais alterado, então a mesma
    instância atende requisições concorrentes.
    """

    def __init__(self, env: jinja2.Environment, macros: Dict[str, Macro]):
        self._env = env
        self.macros = macros
        self._compile = lru_cache(maxsize=256)(env.from_string)

    @classmethod
    def load(cls, paths: Iterable[str] = ()) -> "Template":
        env = _new_environment()
        macros: Dict[str, Macro] = {}

        for path in [DEFAULT_TEMPLATE_PATH, *paths]:
            try:
                with open(path, "r", encoding="utf-8") as fp:
                    source = fp.read()
            except OSError as exc:
                raise ConfigError(f"falha ao ler template {path}: {exc}") from exc

            try:
                module = env.from_string(source).make_module()
            except jinja2.TemplateError as exc:
                raise ConfigError(f"template inválido {path}: {exc}") from exc

            exported = {
                name: getattr(module, name)
                for name in dir(module)
                if not name.startswith("_") and isinstance(getattr(module, name), Macro)
            }
            # arquivos posteriores sobrescrevem macros de mesmo nome
            macros.update(exported)
            env.globals.update(exported)
            logger.debug("Template %s carregado (%d macros)", path, len(exported))

        return cls(env, macros)

    def check(self, source: str) -> None:
        try:
            self._compile(source)
        except jinja2.TemplateSyntaxError as exc:
            raise ConfigError(f"fonte de mensagem inválida {source!r}: {exc}") from exc

    def render(self, source: str, message: WebhookMessage) -> str:
        try:
            compiled = self._compile(source)
            return compiled.render(
                data=message,
                status=message.status,
                receiver=message.receiver,
                alerts=message.alerts,
                group_labels=message.group_labels,
                common_labels=message.common_labels,
                common_annotations=message.common_annotations,
                external_url=message.external_url,
            )
        except Exception as exc:  # erros de filtros também contam como falha de render
            raise RenderError(f"falha ao renderizar template: {exc}") from exc
