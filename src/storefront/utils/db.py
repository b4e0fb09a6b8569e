from protean.domain import Domain
from sqlalchemy import create_engine

_RELATIONAL = ("sqlite", "postgresql")


def _relational_providers(domain: Domain):
    for _, provider in domain.providers.items():
        if provider.conn_info["provider"] in _RELATIONAL:
            yield provider


def setup_db(domain: Domain) -> list[str]:
    """Create tables, unique indexes included, for every relational provider.

    Returns the names of the tables created.
    """
    created = []
    with domain.domain_context():
        for provider in _relational_providers(domain):
            engine = create_engine(provider.conn_info["database_uri"])

            # Touching each repository's DAO registers its model with SQLAlchemy
            for registry in (domain.registry.aggregates, domain.registry.entities):
                for _, record in registry.items():
                    if record.cls.meta_.provider == provider.name:
                        domain.repository_for(record.cls)._dao  # noqa: B018

            provider._metadata.create_all(engine)
            created.extend(sorted(provider._metadata.tables))
    return created


def drop_db(domain: Domain) -> None:
    with domain.domain_context():
        for provider in _relational_providers(domain):
            engine = create_engine(provider.conn_info["database_uri"])
            provider._metadata.drop_all(engine)
