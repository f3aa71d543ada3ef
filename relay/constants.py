import os

# Configurações globais de ambiente
CONFIG_FILE = os.getenv("CONFIG_FILE", "config.yml")
APP_HOST = os.getenv("APP_HOST", "0.0.0.0")
APP_PORT = int(os.getenv("APP_PORT", "8060"))
DEBUG_MODE = os.getenv("DEBUG_MODE", "False").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG" if DEBUG_MODE else "INFO").upper()

# Cliente HTTP de saída (robô e sink secundário)
HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", "5"))
HTTP_VERIFY_TLS = os.getenv("HTTP_VERIFY_TLS", "true").lower() == "true"

# Sink secundário: sem URL o fan-out fica desligado
HTTP_THIRD_API_URL = os.getenv("HTTP_THIRD_API_URL", "").strip()
HTTP_THIRD_API_SOURCE = os.getenv("HTTP_THIRD_API_SOURCE", "")

# Endpoints de ciclo de vida (/-/reload)
WEB_ENABLE_LIFECYCLE = os.getenv("WEB_ENABLE_LIFECYCLE", "false").lower() == "true"

# Mensagem padrão quando nem o target nem o config definem uma
DEFAULT_TITLE_SOURCE = "{{ ding_link_title(data) }}"
DEFAULT_TEXT_SOURCE = "{{ ding_link_content(data) }}"
