"""Pluggable policies for the normalized query generator.

Every strategy is a plain callable with a default implementation, so a
caller can override one concern (naming, hook shape, conflict handling)
without touching the others.
"""
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Union
from normalized_query.core.config import Settings, settings as default_settings
from normalized_query.schemas.graph import GeneratedMethod, GeneratedSchema
from normalized_query.generators.query_gen.index import SchemaIndex
from normalized_query.generators.query_gen.reconcile import ConflictPolicy
from normalized_query.generators.query_gen.render_operation import (
    build_key_builder,
    classify_operation,
    default_key_getter,
)
from normalized_query.generators.query_gen.types import (
    Declaration,
    MethodGeneratorConfig,
    OperationKind,
    PluginFileConfig,
)
from normalized_query.generators.query_gen.utils import quote, to_camel_case, to_constant_case


# Conflict policies

def generated_wins_policy(new: Optional[Declaration], existing: Optional[Declaration]) -> Optional[Declaration]:
    """Regenerated text replaces edits; declarations no longer generated are dropped."""
    return new


def keep_existing_policy(new: Optional[Declaration], existing: Optional[Declaration]) -> Optional[Declaration]:
    """Previous text always wins."""
    return existing if existing is not None else new


def preserve_additions_policy(new: Optional[Declaration], existing: Optional[Declaration]) -> Optional[Declaration]:
    """Regenerated text wins conflicts, unmatched previous declarations survive."""
    return new if new is not None else existing


# Naming

def default_entity_name_writer(schema: GeneratedSchema) -> str:
    return to_camel_case(f"{schema.generated_name}-Entity")


def default_entity_name_const_name_writer(schema: GeneratedSchema) -> str:
    return to_constant_case(f"{schema.generated_name}-Entity-Name")


def default_hook_name_writer(method: GeneratedMethod) -> str:
    return to_camel_case(f"use-{method.generated_name}")


def default_key_builder_name_writer(method: GeneratedMethod) -> str:
    return to_camel_case(f"build-{method.generated_name}-key")


@dataclass
class NamingPolicy:
    entity_name_writer: Callable[[GeneratedSchema], str] = default_entity_name_writer
    entity_name_const_name_writer: Callable[[GeneratedSchema], str] = default_entity_name_const_name_writer
    hook_name_writer: Callable[[GeneratedMethod], str] = default_hook_name_writer
    key_builder_name_writer: Callable[[GeneratedMethod], str] = default_key_builder_name_writer


# Hooks

def default_head_getter(config: MethodGeneratorConfig, preload: Optional[str]) -> List[str]:
    return [preload] if preload else []


def default_options_getter(config: MethodGeneratorConfig, options: List[str]) -> List[str]:
    return options


def default_request_init_getter(config: MethodGeneratorConfig) -> Optional[str]:
    return None


RequestEnabled = Union[bool, str, Callable[[MethodGeneratorConfig, str, List[str]], Union[bool, str, None]], None]


@dataclass
class HookPolicy:
    """Shape of the generated react-query helpers.

    ``base_url`` is either a literal URL or a callable returning a
    TypeScript expression. ``request_enabled`` is ``None`` (derive from
    required request properties), a bool, an expression, or a callable
    receiving the config, the derived expression and the required
    property accessors.
    """
    base_url: Union[str, Callable[[MethodGeneratorConfig], str]] = ""
    request_init_getter: Callable[[MethodGeneratorConfig], Optional[str]] = default_request_init_getter
    head_getter: Callable[[MethodGeneratorConfig, Optional[str]], List[str]] = default_head_getter
    request_enabled: RequestEnabled = None
    operation_kind_getter: Callable[[GeneratedMethod, SchemaIndex], OperationKind] = classify_operation
    key_builder_getter: Callable[[MethodGeneratorConfig], Optional[Declaration]] = build_key_builder
    key_getter: Callable[[MethodGeneratorConfig, Optional[Declaration], Optional[str]], str] = default_key_getter
    options_getter: Callable[[MethodGeneratorConfig, List[str]], List[str]] = default_options_getter
    undefined_request_for_skip: bool = True

    def base_url_expression(self, config: MethodGeneratorConfig) -> str:
        if callable(self.base_url):
            return self.base_url(config)
        return quote(self.base_url)


@dataclass
class PluginConfig:
    """Complete generator configuration."""
    files: List[PluginFileConfig] = field(default_factory=list)
    naming: NamingPolicy = field(default_factory=NamingPolicy)
    hook: HookPolicy = field(default_factory=HookPolicy)
    conflict_policy: ConflictPolicy = generated_wins_policy
    allow_string_key_references: bool = True
    types_import_path: str = "./types/generated/api"
    client_import_path: str = "./api-client/generated/client-functions"

    @classmethod
    def from_settings(cls, files: List[PluginFileConfig], settings: Optional[Settings] = None, **overrides) -> "PluginConfig":
        """Build a config whose ambient defaults come from Settings."""
        settings = settings or default_settings
        values = dict(
            files=files,
            hook=HookPolicy(
                base_url=settings.base_url,
                undefined_request_for_skip=settings.undefined_request_for_skip,
            ),
            allow_string_key_references=settings.allow_string_key_references,
            types_import_path=settings.types_import_path,
            client_import_path=settings.client_import_path,
        )
        values.update(overrides)
        return cls(**values)
