"""Alchemy package: crafting-path resolver for Little Alchemy style games."""
from .catalog import Element, ElementCatalog, Recipe, UnlockCondition
from .graph import RecipeGraph
from .resolver import BuildPlan, BuildStep, PathResolver, ResolutionCache, merge_plans
from .closure import CatalogEntry, ClosureBuilder
from .errors import AlchemyError, ConfigError, ElementNotFound, MalformedData, Unreachable
from .loader import catalog_from_data, load_catalog
from .history import History, HistoryItem, load_history, unlocked_elements
from .config import load_config, save_config, UserConfig
from .resolver_logging import LogLevel, ResolverLogger, create_logger, create_string_logger

__all__ = [
    "Element",
    "ElementCatalog",
    "Recipe",
    "UnlockCondition",
    "RecipeGraph",
    "BuildPlan",
    "BuildStep",
    "PathResolver",
    "ResolutionCache",
    "merge_plans",
    "CatalogEntry",
    "ClosureBuilder",
    # Errors
    "AlchemyError",
    "ConfigError",
    "ElementNotFound",
    "MalformedData",
    "Unreachable",
    # Loading
    "catalog_from_data",
    "load_catalog",
    "History",
    "HistoryItem",
    "load_history",
    "unlocked_elements",
    "load_config",
    "save_config",
    "UserConfig",
    "LogLevel",
    "ResolverLogger",
    "create_logger",
    "create_string_logger",
]
