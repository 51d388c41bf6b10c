"""Configuration classes for the markup loader.

This module provides configuration objects for the attribute tokenizer and
the tree builder, plus the top-level ``ParserConfig`` that bundles them with
the error-handling mode.
"""

import json
from dataclasses import dataclass, field, replace
from enum import Enum, auto
from typing import Any, Dict, Optional


class MismatchPolicy(Enum):
    """What to do with a close tag that does not match the innermost open node."""

    IGNORE = auto()      # Drop the close tag, the open node stays open
    BACKTRACK = auto()   # Close up to the nearest ancestor with the same name


class UnclosedPolicy(Enum):
    """What to do with nodes that are still open at the end of input."""

    CLOSE = auto()       # Link them into their parents, innermost first
    FOREST = auto()      # Leave them out of the tree, expose them separately (default)


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigValidationError(ConfigError):
    """Exception raised when configuration validation fails."""

    def __init__(self, message: str, field_name: Optional[str] = None) -> None:
        super().__init__(message)
        self.field_name = field_name


@dataclass(frozen=True)
class AttributeConfig:
    """Configuration for the attribute tokenizer."""

    # A backslash inside a quoted value keeps the next character from
    # closing the value
    backslash_escapes: bool = True
    # Drop the backslash of every "\x" pair inside quoted values
    unescape_backslashes: bool = False
    # Accept name=value without quotes, terminated by whitespace
    allow_unquoted_values: bool = True

    def __post_init__(self) -> None:
        """Validate attribute configuration."""
        if self.unescape_backslashes and not self.backslash_escapes:
            raise ConfigValidationError(
                "unescape_backslashes requires backslash_escapes",
                field_name="unescape_backslashes",
            )


@dataclass(frozen=True)
class TreeConfig:
    """Configuration for tree assembly."""

    mismatch_policy: MismatchPolicy = MismatchPolicy.IGNORE
    unclosed_policy: UnclosedPolicy = UnclosedPolicy.FOREST
    include_processing_instructions: bool = True
    check_reserved_names: bool = False

    def __post_init__(self) -> None:
        """Validate tree configuration."""
        if not isinstance(self.mismatch_policy, MismatchPolicy):
            raise ConfigValidationError(
                f"Invalid mismatch_policy: {self.mismatch_policy!r}",
                field_name="mismatch_policy",
            )
        if not isinstance(self.unclosed_policy, UnclosedPolicy):
            raise ConfigValidationError(
                f"Invalid unclosed_policy: {self.unclosed_policy!r}",
                field_name="unclosed_policy",
            )


_COMPONENTS = ("attributes", "tree")


@dataclass(frozen=True)
class ParserConfig:
    """Complete configuration for one parse.

    Frozen so a single instance can be shared between threads and parser
    instances; use ``override`` to derive variants.
    """

    attributes: AttributeConfig = field(default_factory=AttributeConfig)
    tree: TreeConfig = field(default_factory=TreeConfig)

    strict: bool = False
    decode_entities: bool = True
    report_trailing_text: bool = True
    encoding: str = "utf-8"
    correlation_id: Optional[str] = None

    name: Optional[str] = None
    description: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate the complete parser configuration."""
        if not isinstance(self.attributes, AttributeConfig):
            raise ConfigValidationError(
                "attributes must be an AttributeConfig", field_name="attributes"
            )
        if not isinstance(self.tree, TreeConfig):
            raise ConfigValidationError("tree must be a TreeConfig", field_name="tree")
        if not self.encoding:
            raise ConfigValidationError("encoding cannot be empty", field_name="encoding")

    def override(self, **kwargs: Any) -> "ParserConfig":
        """Create a new configuration with specific overrides.

        Args:
            **kwargs: Field overrides; nested fields use ``component__field``

        Returns:
            New ParserConfig instance with overrides applied

        Example:
            >>> config = ParserConfig().override(
            ...     strict=True,
            ...     tree__mismatch_policy=MismatchPolicy.BACKTRACK,
            ... )
        """
        nested_overrides: Dict[str, Dict[str, Any]] = {}
        top_level: Dict[str, Any] = {}
        for key, value in kwargs.items():
            if "__" in key:
                component, field_name = key.split("__", 1)
                if component not in _COMPONENTS:
                    raise ConfigValidationError(
                        f"Unknown configuration component: {component}",
                        field_name=key,
                    )
                nested_overrides.setdefault(component, {})[field_name] = value
            else:
                top_level[key] = value

        try:
            for component, values in nested_overrides.items():
                top_level[component] = replace(getattr(self, component), **values)
            return replace(self, **top_level)
        except TypeError as e:
            raise ConfigValidationError(f"Invalid override: {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary format."""
        def _dataclass_to_dict(obj: Any) -> Any:
            if hasattr(obj, "__dataclass_fields__"):
                return {
                    name: _dataclass_to_dict(getattr(obj, name))
                    for name in obj.__dataclass_fields__
                }
            if isinstance(obj, Enum):
                return obj.name
            return obj

        result = _dataclass_to_dict(self)
        if not isinstance(result, dict):
            raise ConfigValidationError("Configuration serialization failed")
        return result

    def to_json(self, indent: int = 2) -> str:
        """Convert configuration to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ParserConfig":
        """Create configuration from dictionary.

        Unknown keys are rejected so that typos in configuration files are
        reported instead of silently ignored.
        """
        def _build(target_class: type, values: Dict[str, Any]) -> Any:
            if not isinstance(values, dict):
                raise ConfigValidationError(
                    f"Expected a mapping for {target_class.__name__}"
                )
            fields = target_class.__dataclass_fields__
            unknown = set(values) - set(fields)
            if unknown:
                raise ConfigValidationError(
                    f"Unknown {target_class.__name__} fields: {sorted(unknown)}"
                )
            kwargs: Dict[str, Any] = {}
            for name, value in values.items():
                default = getattr(target_class(), name) if name not in _COMPONENTS else None
                if isinstance(default, Enum) and isinstance(value, str):
                    try:
                        value = type(default)[value.upper()]
                    except KeyError as e:
                        raise ConfigValidationError(
                            f"Invalid value {value!r} for {name}", field_name=name
                        ) from e
                kwargs[name] = value
            return target_class(**kwargs)

        data = dict(data)
        components = {
            "attributes": _build(AttributeConfig, data.pop("attributes", {})),
            "tree": _build(TreeConfig, data.pop("tree", {})),
        }
        unknown = set(data) - set(cls.__dataclass_fields__)
        if unknown:
            raise ConfigValidationError(f"Unknown ParserConfig fields: {sorted(unknown)}")
        return cls(**components, **data)

    @classmethod
    def from_json(cls, json_str: str) -> "ParserConfig":
        """Create configuration from JSON string."""
        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as e:
            raise ConfigValidationError(f"Invalid configuration JSON: {e}") from e
        return cls.from_dict(data)

    # Preset factory methods
    @classmethod
    def lenient(cls) -> "ParserConfig":
        """Best-effort parsing that ignores mismatched close tags.

        Elements still open at the end of input stay out of the tree and
        are returned on ``ParseResult.unclosed``.
        """
        return cls(
            name="lenient",
            description="Continue past malformed input, ignoring stray close tags",
        )

    @classmethod
    def strict_mode(cls) -> "ParserConfig":
        """Stop at the first error and report it as a failure."""
        return cls(
            strict=True,
            tree=TreeConfig(check_reserved_names=True),
            name="strict",
            description="Fail on the first malformed construct",
        )

    @classmethod
    def recovering(cls) -> "ParserConfig":
        """Best-effort parsing that closes skipped and unfinished elements."""
        return cls(
            tree=TreeConfig(
                mismatch_policy=MismatchPolicy.BACKTRACK,
                unclosed_policy=UnclosedPolicy.CLOSE,
            ),
            name="recovering",
            description="Roll mismatched close tags back to the nearest matching ancestor",
        )

    @classmethod
    def preset(cls, name: str) -> "ParserConfig":
        """Look up a preset by name."""
        presets = {
            "lenient": cls.lenient,
            "strict": cls.strict_mode,
            "recovering": cls.recovering,
        }
        try:
            return presets[name]()
        except KeyError as e:
            raise ConfigValidationError(
                f"Unknown preset {name!r}; expected one of {sorted(presets)}"
            ) from e
