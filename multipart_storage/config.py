"""
Application settings entry point.

Modules import `settings` from here; the typed sub-configs are available
through `config_manager.get_typed_config()`.
"""
from multipart_storage.core.config import StorageConfig, config_manager

settings = config_manager.settings

storage_config: StorageConfig = config_manager.get_typed_config("storage")
