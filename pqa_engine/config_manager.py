"""
Scoring Config Manager
======================
Owns each organization's active scoring config: read (falling back to the
platform default), validated full-document replace, and reset to defaults.
"""

from typing import Any, Dict, Union

from .errors import InvalidConfig
from .logging_config import get_logger
from .models.schemas import ScoringConfig
from .models.scoring_config import create_default_scoring_config, parse_scoring_config
from .storage.interfaces import ConfigStore, call_store

logger = get_logger(__name__)


class ScoringConfigManager:
    """
    Get / replace / reset the active scoring config of an organization.
    """

    def __init__(self, store: ConfigStore):
        self.store = store

    def get_config(self, organization_id: str) -> ScoringConfig:
        """Return the active config, or the platform default if none is stored"""
        stored = call_store("config store", self.store.load, organization_id)
        if stored is not None:
            return stored
        return create_default_scoring_config()

    def validate_config(
        self,
        organization_id: str,
        config: Union[ScoringConfig, Dict[str, Any]],
    ) -> ScoringConfig:
        """Parse and check a config without storing it. Raises InvalidConfig."""
        try:
            return parse_scoring_config(config)
        except InvalidConfig as e:
            logger.warning(
                "Rejected scoring config for org %s: %s", organization_id, "; ".join(e.errors)
            )
            raise

    def update_config(
        self,
        organization_id: str,
        config: Union[ScoringConfig, Dict[str, Any]],
    ) -> ScoringConfig:
        """
        Validate and store a config, replacing the previous one entirely.

        Raises:
            InvalidConfig: nothing is written
            StoreUnavailable: the config store could not be reached
        """
        validated = self.validate_config(organization_id, config)
        call_store("config store", self.store.save, organization_id, validated)
        logger.info(
            "Scoring config updated for org %s (%d rules)", organization_id, len(validated.rules)
        )
        return validated

    def reset(self, organization_id: str) -> ScoringConfig:
        """Restore platform defaults. The engine recomputes scores afterwards."""
        defaults = create_default_scoring_config()
        call_store("config store", self.store.save, organization_id, defaults)
        logger.info("Scoring config reset to defaults for org %s", organization_id)
        return defaults
