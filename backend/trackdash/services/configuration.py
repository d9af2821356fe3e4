import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, delete, select

from ..base_config import BASE_CONFIG, config_string_to_value, value_type
from .. import db
from ..models import Configuration


logger = logging.getLogger(__name__)


class ConfigTypeMismatchError(ValueError):
    pass


class ConfigurationStore:
    def __init__(self, session: Session, defaults: Optional[Dict[str, Any]] = None) -> None:
        self.session = session
        self.defaults = BASE_CONFIG if defaults is None else defaults

    def _stored_values(self) -> Dict[str, Any]:
        rows = self.session.exec(select(Configuration)).all()
        return {row.name: config_string_to_value(row.value) for row in rows}

    def get(self) -> Dict[str, Any]:
        stored = self._stored_values()
        config = dict(self.defaults)
        for name in self.defaults:
            if name in stored:
                config[name] = stored[name]
        return config

    def set(self, name: str, value: str) -> Dict[str, Any]:
        expected = value_type(self.defaults.get(name))
        received = value_type(config_string_to_value(value))
        if expected != received:
            raise ConfigTypeMismatchError(
                f"Tipo de valor inválido para {name}: se esperaba {expected} y se recibió {received}"
            )

        row = self.session.exec(select(Configuration).where(Configuration.name == name)).first()
        if row:
            row.value = value
        else:
            row = Configuration(name=name, value=value)
        self.session.add(row)
        self.session.commit()
        return self.get()

    def redundant_names(self) -> List[str]:
        return [
            name
            for name, stored in self._stored_values().items()
            if name in self.defaults and self.defaults[name] == stored
        ]

    def prune_defaults(self) -> List[str]:
        """Delete stored rows whose value equals the compiled-in default."""
        names = self.redundant_names()
        if names:
            self.session.exec(delete(Configuration).where(Configuration.name.in_(names)))
            self.session.commit()
        return names


def prune_default_configuration(defaults: Optional[Dict[str, Any]] = None) -> None:
    # Tarea en segundo plano: los errores se registran y no llegan al cliente
    try:
        with Session(db.engine) as session:
            removed = ConfigurationStore(session, defaults).prune_defaults()
    except SQLAlchemyError:
        logger.exception("Error removing configuration rows equal to the base config")
        return
    if removed:
        logger.info(f"Removed configuration rows equal to the base config: {removed}")
