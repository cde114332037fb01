"""
Service identification for log lines.

Every record carries `<service>@<env>:<instance>` so that logs from several
sweeper workers and API processes sharing one inventory database can be told apart.
"""

import os
import socket
from functools import lru_cache


@lru_cache(maxsize=1)
def get_service_context() -> str:
    service_name = os.getenv('SERVICE_NAME', 'ticket-inventory')
    deploy_env = os.getenv('DEPLOY_ENV', 'local_dev')
    instance = os.getenv('INSTANCE_ID') or f'{socket.gethostname()}-{os.getpid()}'
    return f'{service_name}@{deploy_env}:{instance}'
