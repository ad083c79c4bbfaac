from .redis_list import PLUGIN_METADATA, RedisSink

__all__ = ["PLUGIN_METADATA", "RedisSink"]
