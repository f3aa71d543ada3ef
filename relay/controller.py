import logging
import time

from flask import Flask, g, request
from werkzeug.exceptions import HTTPException

from . import responder
from .constants import CONFIG_FILE, HTTP_THIRD_API_SOURCE, HTTP_THIRD_API_URL, WEB_ENABLE_LIFECYCLE
from .exceptions import ConfigError, PayloadError, RenderError, TransportError
from .fanout import forward_copy
from .models import decode_message
from .notifier import NotificationBuilder, send_notification
from .state import StateHolder

logger = logging.getLogger(__name__)


class TargetLogger(logging.LoggerAdapter):
    def process(self, msg, kwargs):
        return f"[target={self.extra['target']}] {msg}", kwargs


def _client_ip() -> str:
    forwarded = request.headers.get("X-Forwarded-For", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.headers.get("X-Real-IP") or request.remote_addr or "-"


def create_app(
    holder: StateHolder,
    config_path: str = CONFIG_FILE,
    third_api_url: str = HTTP_THIRD_API_URL,
    third_api_source: str = HTTP_THIRD_API_SOURCE,
    enable_lifecycle: bool = WEB_ENABLE_LIFECYCLE,
) -> Flask:
    app = Flask(__name__)

    @app.before_request
    def start_timer():
        g.started_at = time.monotonic()

    @app.after_request
    def log_request(response):
        elapsed_ms = (time.monotonic() - g.get("started_at", time.monotonic())) * 1000
        logger.info(
            '%s "%s %s" %s %.1fms',
            _client_ip(),
            request.method,
            request.path,
            response.status_code,
            elapsed_ms,
        )
        return response

    @app.errorhandler(Exception)
    def recover(exc):
        # rede de segurança: uma falha inesperada derruba só esta requisição
        if isinstance(exc, HTTPException):
            return exc
        name = request.view_args.get("name", "-") if request.view_args else "-"
        return responder.failure(TargetLogger(logger, {"target": name}), exc)

    @app.route('/<name>/send', methods=['POST'])
    def send(name):
        state = holder.snapshot()
        log = TargetLogger(logger, {"target": name})

        target = state.targets.get(name)
        if target is None:
            return responder.target_not_found(log)

        try:
            message = decode_message(request.get_data())
            notification = NotificationBuilder(state.template, state.config, target).build(message)
        except (PayloadError, RenderError) as exc:
            return responder.failure(log, exc)

        forward_copy(message, target, url=third_api_url, source=third_api_source)

        try:
            robot_resp = send_notification(notification, state.http_client, target)
        except TransportError as exc:
            return responder.failure(log, exc)

        return responder.robot_response(log, robot_resp)

    @app.route('/-/healthy', methods=['GET'])
    def healthy():
        return 'OK', 200

    @app.route('/-/ready', methods=['GET'])
    def ready():
        if holder.snapshot().loaded:
            return 'OK', 200
        return 'Service Unavailable', 503

    @app.route('/-/reload', methods=['POST'])
    def reload():
        if not enable_lifecycle:
            return 'Lifecycle API is not enabled.', 403
        try:
            state = holder.reload(config_path)
        except ConfigError as exc:
            logger.error("Falha ao recarregar a configuração: %s", exc)
            return f'failed to reload config: {exc}', 500
        return f'OK (generation {state.generation})', 200

    return app
