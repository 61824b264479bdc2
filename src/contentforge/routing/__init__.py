"""Model catalog and provider routing."""

from .catalog import DEFAULT_PROVIDERS, ModelCatalog, ProviderDescriptor
from .router import ProviderRouter, RoutedGeneration

__all__ = [
    "DEFAULT_PROVIDERS",
    "ModelCatalog",
    "ProviderDescriptor",
    "ProviderRouter",
    "RoutedGeneration",
]
