"""
Store configuration bag.

* Accepts snake_case names or the camelCase aliases (``appName`` ...).
* Frozen once built; a store keeps its configuration for its lifetime.
"""

from typing import Any, List, Union

from pydantic import BaseModel, Field

MEMORY_STORAGE = "memory"
SQL_STORAGE = "sql"


class StoreConfig(BaseModel):
    app_name: str = Field("App", alias="appName")
    version: Union[int, float] = 1
    type: Union[str, List[str]] = MEMORY_STORAGE
    description: str = ""
    id_key_name: str = Field("_id", alias="idKeyName", min_length=1)
    created_date_key_name: str = Field("_createdDate", alias="createdDateKeyName", min_length=1)
    updated_date_key_name: str = Field(
        "_lastUpdatedDate", alias="updatedDateKeyName", min_length=1
    )
    database_url: str | None = Field(None, alias="databaseUrl")

    model_config = {"frozen": True, "populate_by_name": True, "extra": "forbid"}

    # ------------------------------------------------------------------ #
    # convenience helpers
    # ------------------------------------------------------------------ #
    @classmethod
    def from_value(cls, config: "StoreConfig | dict[str, Any] | None") -> "StoreConfig":
        """Build from None, a mapping, or return an existing config as-is."""
        if config is None:
            return cls()
        if isinstance(config, cls):
            return config
        return cls.model_validate(config)

    @property
    def default_keys(self) -> tuple[str, str, str]:
        return (self.id_key_name, self.created_date_key_name, self.updated_date_key_name)

    @property
    def driver_names(self) -> List[str]:
        """Preference-ordered driver names."""
        return [self.type] if isinstance(self.type, str) else list(self.type)
