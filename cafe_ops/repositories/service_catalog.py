"""Service catalog - loads service definitions from configuration.

Loads from config/cafe.yaml and provides lookup methods.
"""

from typing import Dict, List, Optional

from cafe_ops.config import Config, get_config
from cafe_ops.exceptions import ServiceNotFoundError
from cafe_ops.models.service import ServiceDefinition, ServiceType


class ServiceCatalog:
    """Indexed, read-only view of the configured services."""

    def __init__(self, config: Optional[Config] = None):
        self._config = config or get_config()
        self._services_by_id: Dict[str, ServiceDefinition] = {}
        self._load_services()

    def _load_services(self) -> None:
        self._services_by_id = {service.id: service for service in self._config.services}

    def get_by_id(self, service_id: str) -> ServiceDefinition:
        """Get a service definition by id.

        Raises:
            ServiceNotFoundError: If the id is unknown
        """
        service = self._services_by_id.get(service_id)
        if service is None:
            raise ServiceNotFoundError(service_id)
        return service

    def get_sellable(self, service_id: str) -> ServiceDefinition:
        """Like get_by_id, but inactive services count as missing."""
        service = self.get_by_id(service_id)
        if not service.is_active:
            raise ServiceNotFoundError(service_id)
        return service

    def get_all(self, public_only: bool = False) -> List[ServiceDefinition]:
        services = list(self._services_by_id.values())
        if public_only:
            services = [s for s in services if s.is_public and s.is_active]
        return services

    def get_by_type(self, service_type: ServiceType) -> List[ServiceDefinition]:
        return [s for s in self._services_by_id.values() if s.type == service_type]

    def reload(self) -> None:
        self._config.reload()
        self._load_services()

    def __len__(self) -> int:
        return len(self._services_by_id)

    def __contains__(self, service_id: str) -> bool:
        return service_id in self._services_by_id


_catalog_instance: Optional[ServiceCatalog] = None


def get_service_catalog() -> ServiceCatalog:
    """Get global service catalog instance (singleton)."""
    global _catalog_instance
    if _catalog_instance is None:
        _catalog_instance = ServiceCatalog()
    return _catalog_instance


def reset_service_catalog() -> None:
    global _catalog_instance
    _catalog_instance = None
