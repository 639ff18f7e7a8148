from .loader import load_config
from .model import Config

__all__ = ["Config", "load_config"]
