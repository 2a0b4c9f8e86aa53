"""
Mini-App Registry

Remote catalog and custom mini-app aggregation, pinning, onboarding and
capability revocation.
"""

from .descriptor import AppDescriptor, NetworkContext, custom_app_id
from .catalog import CatalogCache, CatalogSnapshot, JsonFileCatalogSource
from .custom_apps import CustomAppStore
from .pins import PinRegistry
from .permissions import CapabilityStore, CapabilityRevoker
from .registry import AppRegistry, RegistryView
from .manifest import HttpManifestResolver, ManifestResolver
from .onboarding import OnboardingValidator, ValidatorState
from .config import RegistryConfig, build_registry

__all__ = [
    "AppDescriptor",
    "NetworkContext",
    "custom_app_id",
    "CatalogCache",
    "CatalogSnapshot",
    "JsonFileCatalogSource",
    "CustomAppStore",
    "PinRegistry",
    "CapabilityStore",
    "CapabilityRevoker",
    "AppRegistry",
    "RegistryView",
    "HttpManifestResolver",
    "ManifestResolver",
    "OnboardingValidator",
    "ValidatorState",
    "RegistryConfig",
    "build_registry",
]
