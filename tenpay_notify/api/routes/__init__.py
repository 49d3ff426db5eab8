# API routes package
from .notify import pay_notify, collect_params, set_forwarder_instance

__all__ = [
    'pay_notify',
    'collect_params',
    'set_forwarder_instance',
]
