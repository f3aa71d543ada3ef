import logging
import signal
import sys

from relay.constants import APP_HOST, APP_PORT, CONFIG_FILE, DEBUG_MODE, LOG_LEVEL
from relay.controller import create_app
from relay.exceptions import ConfigError
from relay.state import StateHolder

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("relay")

holder = StateHolder()
app = create_app(holder)

try:
    holder.reload(CONFIG_FILE)
except ConfigError as exc:
    # sem geração publicada: /-/ready responde 503 e todo target dá 404
    logger.error("Não foi possível carregar %s: %s", CONFIG_FILE, exc)


def _reload_on_sighup(signum, frame):
    try:
        holder.reload(CONFIG_FILE)
    except ConfigError as exc:
        logger.error("Recarga via SIGHUP falhou, mantendo a configuração anterior: %s", exc)
    except Exception:
        # o handler roda na thread principal: uma exceção aqui derrubaria o app.run
        logger.exception("Erro inesperado na recarga via SIGHUP, mantendo a configuração anterior")


if __name__ == '__main__':
    if not holder.snapshot().loaded:
        sys.exit(1)

    if hasattr(signal, "SIGHUP"):
        signal.signal(signal.SIGHUP, _reload_on_sighup)

    # use_reloader=False: o reloader do Flask criaria um segundo processo sem o handler de SIGHUP
    app.run(host=APP_HOST, port=APP_PORT, debug=DEBUG_MODE, threaded=True, use_reloader=False)
