import logging
import threading
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from .config import Config, Target, load_config
from .services import HttpClient
from .template import Template

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConfigState:
    """
    Unidade atômica de troca: config, templates, tabela de targets e cliente HTTP.
    Os quatro campos sempre vêm do mesmo evento de recarga.
    """

    config: Optional[Config]
    template: Optional[Template]
    targets: Mapping[str, Target]
    http_client: Optional[HttpClient]
    generation: int = 0

    @classmethod
    def empty(cls) -> "ConfigState":
        return cls(config=None, template=None, targets=MappingProxyType({}), http_client=None)

    @property
    def loaded(self) -> bool:
        return self.config is not None


def load_state(config_path: str) -> Tuple[Config, Template]:
    """
    Lê o YAML e compila os templates, validando também as fontes de
    título/texto. Levanta ConfigError sem tocar no estado publicado.
    """
    config = load_config(config_path)
    template = Template.load(config.templates)
    template.check(config.default_message.title)
    template.check(config.default_message.text)
    for target in config.targets.values():
        if target.message is not None:
            template.check(target.message.title or config.default_message.title)
            template.check(target.message.text or config.default_message.text)
    return config, template


class StateHolder:
    """
    Guarda a ConfigState corrente.

    Leitores pegam a referência inteira de uma vez (``snapshot``) e usam essa
    mesma tupla até o fim da requisição; o escritor troca a referência sob o
    mesmo lock. Como a ConfigState é imutável, ninguém enxerga metade de uma
    recarga.
    """

    def __init__(self, state: Optional[ConfigState] = None):
        self._lock = threading.Lock()
        self._reload_lock = threading.Lock()
        self._state = state or ConfigState.empty()

    def snapshot(self) -> ConfigState:
        with self._lock:
            return self._state

    def update_state(self, state: ConfigState) -> None:
        with self._lock:
            self._state = state

    def update(self, config: Config, template: Template, http_client: Optional[HttpClient] = None) -> ConfigState:
        with self._lock:
            state = ConfigState(
                config=config,
                template=template,
                targets=config.targets,
                http_client=http_client or HttpClient(),
                generation=self._state.generation + 1,
            )
            self._state = state
        logger.info("Configuração publicada (geração %d, %d targets)", state.generation, len(state.targets))
        return state

    def reload(self, config_path: str) -> ConfigState:
        # serializa recargas concorrentes (SIGHUP + /-/reload); a leitura do disco fica fora do lock dos leitores
        with self._reload_lock:
            config, template = load_state(config_path)
            return self.update(config, template)
