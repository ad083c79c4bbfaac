from .utils import get_plugin_name, parse_plugin_config

__all__ = ["get_plugin_name", "parse_plugin_config"]
