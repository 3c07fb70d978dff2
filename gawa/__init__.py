"""Relay de notificações do Alertmanager para um endpoint HTTP via template.

Este pacote contém:
- constants: variáveis de ambiente e string de versão
- errors: taxonomia de erros (entrada inválida x falha de encaminhamento)
- models: decodificação e validação do payload do webhook
- templating: carga do template Jinja2 e renderização (buffer ou streaming)
- pipe: pipe de bytes limitado entre a thread de render e o POST
- admission: limite de relays concorrentes
- metrics: contadores Prometheus e classificação de resultado
- relay: render + POST para o destino e classificação da resposta
- controller: criação do Flask app e endpoints
"""

__version__ = "0.3.0"
