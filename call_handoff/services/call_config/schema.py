"""Application schema loading and per-call config resolution."""
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from call_handoff.services.call_config.models import CallConfig, CallConfigError

logger = logging.getLogger(__name__)


class AppSchema:
    """Per-call variable schema backed by a YAML file."""

    def __init__(self, schema_file: str):
        self.schema_file = Path(schema_file)
        self._variables: Optional[Dict[str, Dict[str, Any]]] = None

    def _load(self) -> Dict[str, Dict[str, Any]]:
        """Load the schema from YAML once."""
        if self._variables is None:
            if not self.schema_file.exists():
                raise CallConfigError(f"Application schema not found: {self.schema_file}")
            try:
                with open(self.schema_file, "r") as f:
                    data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise CallConfigError(f"Invalid application schema: {e}") from e
            if not isinstance(data, dict):
                raise CallConfigError("Application schema must be a mapping of variables")
            self._variables = data
        return self._variables

    def get_variables(self) -> Dict[str, Dict[str, Any]]:
        """Get the variable declarations, as served to the platform."""
        return self._load()

    def get_defaults(self) -> Dict[str, Any]:
        """Get default values for variables that declare one."""
        return {
            name: declaration["default"]
            for name, declaration in self._load().items()
            if isinstance(declaration, dict) and "default" in declaration
        }

    def merge_with_defaults(self, env_vars: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Overlay a call's env_vars on the schema defaults."""
        merged = self.get_defaults()
        for name, value in (env_vars or {}).items():
            if value is None:
                continue
            merged[name] = value
        return merged

    def resolve(self, env_vars: Optional[Dict[str, Any]]) -> CallConfig:
        """
        Build the configuration snapshot for a call.

        Raises:
            CallConfigError: if the merged values do not form a valid config
        """
        merged = self.merge_with_defaults(env_vars)
        try:
            return CallConfig.model_validate(merged)
        except ValidationError as e:
            raise CallConfigError(f"Invalid call configuration: {e}") from e
