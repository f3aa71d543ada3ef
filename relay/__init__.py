"""Pacote do relay de webhooks Alertmanager -> robôs de chat (DingTalk).

Este pacote contém:
- constants: variáveis de ambiente e valores padrão
- exceptions: taxonomia de erros do pipeline
- config: leitura do arquivo YAML (targets, mensagens, templates)
- models: payload do Alertmanager, notificação e resposta do robô
- template: motor de templates (Jinja2)
- services: cliente HTTP de saída
- state: snapshot imutável da configuração e o holder com recarga atômica
- notifier: construção e envio da notificação
- fanout: cópia best-effort do payload para um sink secundário
- responder: mapeamento de falhas para respostas HTTP
- controller: criação do Flask app e endpoints
"""
