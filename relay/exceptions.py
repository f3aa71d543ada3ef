"""Erros do pipeline de envio.

A falha de domínio (errcode != 0 na resposta do robô) não é exceção:
chega como ``RobotResponse`` e quem chamou decide o que fazer.
"""


class RelayError(Exception):
    """Base de todos os erros do relay."""


class ConfigError(RelayError):
    """Arquivo de configuração ou template inválido."""


class PayloadError(RelayError):
    """Corpo da requisição não é um payload de alertas válido."""


class RenderError(RelayError):
    """Falha ao executar o template da mensagem."""


class TransportError(RelayError):
    """Falha de rede, timeout, status inesperado ou resposta ilegível."""
