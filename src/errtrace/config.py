from pathlib import Path

from pydantic import (
    Field,
    BaseModel,
    ConfigDict,
    ValidationError,
    field_validator,
)

from errtrace.exception import ConfigError

FORMATTED_WRAP_FUNCTION = "fmt.Errorf"
MODULE_SEPARATOR = "/"


class Config(BaseModel):
    """Settings of one analysis run. Immutable once constructed.

    Field aliases accept the keys used by existing configuration files.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    allowed_types: frozenset[str] = Field(default=frozenset(), alias="AllowedTypes")
    """Fully-qualified concrete types that may be returned as errors."""
    trusted_modules: frozenset[str] = Field(default=frozenset(), alias="OurPackages")
    """Modules whose functions are assumed to return allowed errors. An entry
    ending in `/` trusts every module below it."""
    report_unknown: bool = Field(default=False, alias="ReportUnknown")
    """Report constructs the analysis cannot classify."""
    allow_formatted_wrap: bool = Field(default=False, alias="AllowErrorfWrap")
    """Treat `fmt.Errorf("...%w...", err)` as forwarding `err`."""
    first_arg_wrap_functions: frozenset[str] = Field(
        default=frozenset(), alias="WrapFuncWithFirstArgError"
    )
    """Functions returning a wrap of their first argument."""
    formatted_wrap_function: str = Field(
        default=FORMATTED_WRAP_FUNCTION, alias="FormattedWrapFunction"
    )

    @field_validator("trusted_modules", "allowed_types", "first_arg_wrap_functions")
    @classmethod
    def _no_empty_entries(cls, value: frozenset[str]) -> frozenset[str]:
        if "" in value:
            raise ValueError("entries must not be empty")
        return value

    def is_trusted(self, module: str) -> bool:
        for entry in self.trusted_modules:
            if entry.endswith(MODULE_SEPARATOR):
                if module.startswith(entry):
                    return True
            elif entry == module:
                return True
        return False

    def is_allowed_type(self, type_name: str) -> bool:
        return type_name in self.allowed_types

    def extend(self, **updates) -> "Config":
        """New configuration with set-valued fields unioned and flags or-ed."""
        data = self.model_dump()
        for key, value in updates.items():
            if value is None:
                continue
            current = getattr(self, key)
            if isinstance(current, frozenset):
                data[key] = current | frozenset(value)
            elif isinstance(current, bool):
                data[key] = current or bool(value)
            else:
                data[key] = value
        return Config.create(**data)

    @classmethod
    def create(cls, **data) -> "Config":
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"invalid configuration: {e}") from e

    @classmethod
    def from_file(cls, path: str | Path) -> "Config":
        path = Path(path)
        try:
            payload = path.read_text()
        except OSError as e:
            raise ConfigError(f"cannot read configuration {path}: {e}") from e

        try:
            return cls.model_validate_json(payload)
        except ValidationError as e:
            raise ConfigError(f"invalid configuration {path}: {e}") from e
