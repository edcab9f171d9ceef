from .main import OutputConfig, get_output_config
from .tls import TLSConfig, get_tls_config

__all__ = [
    "OutputConfig",
    "get_output_config",
    "TLSConfig",
    "get_tls_config",
]
