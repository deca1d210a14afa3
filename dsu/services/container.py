"""Service wiring.

Services are constructed once from the Storage bundle and settings and
kept on the application state; request handlers receive them through
dependency functions in dsu.api.deps.
"""

from dataclasses import dataclass

from dsu.core.config import Settings
from dsu.services.authentication_service import AuthenticationService
from dsu.services.authorization_service import AuthorizationService
from dsu.services.data_service import DataService
from dsu.services.schema_service import SchemaService
from dsu.services.third_party_service import ThirdPartyService
from dsu.storage import Storage


@dataclass
class Services:
    """All application services, sharing one Storage bundle."""

    authentication: AuthenticationService
    third_parties: ThirdPartyService
    authorization: AuthorizationService
    schemas: SchemaService
    data: DataService


def build_services(storage: Storage, settings: Settings) -> Services:
    """Construct every service from its storage collaborators.

    Args:
        storage: Storage bundle for the configured engine.
        settings: Application settings.

    Returns:
        Services ready to be used by request handlers.
    """
    authorization = AuthorizationService(
        third_parties=storage.third_parties,
        registry=storage.registry,
        codes=storage.authorization_codes,
        verifications=storage.verifications,
        tokens=storage.authorization_tokens,
        settings=settings,
    )
    schemas = SchemaService(storage.registry, settings)
    return Services(
        authentication=AuthenticationService(
            storage.users, storage.authentication_tokens, settings
        ),
        third_parties=ThirdPartyService(storage.third_parties),
        authorization=authorization,
        schemas=schemas,
        data=DataService(schemas, storage.data, authorization, settings),
    )
