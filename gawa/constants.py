import os
import platform

from . import __version__

APPLICATION = "gawa"
VERSION_STRING = f"{APPLICATION} {__version__} (python{platform.python_version()})"

# Única versão de webhook do Alertmanager que sabemos interpretar
SUPPORTED_WEBHOOK_VERSION = "4"

# Configurações globais de ambiente
LISTEN_ADDR = os.getenv("LISTEN_ADDR", "localhost:9097")
TARGET_URL = os.getenv("TARGET_URL", "")
POST_TEMPLATE = os.getenv("POST_TEMPLATE", "templates/rocketchat.json.j2")
MAX_CLIENTS = int(os.getenv("MAX_CLIENTS", "30"))
DISABLE_CHUNKED = os.getenv("DISABLE_CHUNKED", "false").lower() == "true"
DEBUG_MODE = os.getenv("DEBUG_MODE", "False").lower() == "true"

# Cliente HTTP do destino. O timeout vale para conectar e para cada leitura
# (semântica do requests), não é um prazo total: um destino que responde aos
# poucos pode passar desse valor.
REQUEST_TIMEOUT_SECONDS = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "10"))
TARGET_VERIFY_TLS = os.getenv("TARGET_VERIFY_TLS", "true").lower() == "true"

# Capacidade (bytes) do pipe entre render e envio no modo streaming
PIPE_BUFFER_BYTES = int(os.getenv("PIPE_BUFFER_BYTES", "65536"))

# Tamanho máximo do corpo de resposta do destino que vai para o log
LOG_BODY_MAX = 512
