"""
Runtime Configuration System

Layered configuration (defaults, YAML files, remote store, runtime
overrides) with change-only publishing and a one-time ready latch.
"""

from .models import LoaderSettings, LoggingConfiguration, RemoteConnectionSpec
from .merge import ConfigTree, deep_merge, get_path, merge_layers
from .sources import (
    ConfigurationSource, Layer, StaticConfigurationSource, YAMLConfigurationSource,
    read_yaml_files,
)
from .snapshot import RuntimeSnapshotWriter
from .loader import ConfigurationLoader
from .facade import ConfigFacade
from .core import RuntimeConfiguration
from .builder import ConfigurationBuilder

__all__ = [
    'LoaderSettings',
    'LoggingConfiguration',
    'RemoteConnectionSpec',
    'ConfigTree',
    'deep_merge',
    'get_path',
    'merge_layers',
    'ConfigurationSource',
    'Layer',
    'StaticConfigurationSource',
    'YAMLConfigurationSource',
    'read_yaml_files',
    'RuntimeSnapshotWriter',
    'ConfigurationLoader',
    'ConfigFacade',
    'RuntimeConfiguration',
    'ConfigurationBuilder',
]
