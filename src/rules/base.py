import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable

from src.config import app_config
from src.portfolio.models import CurrentPositions
from src.portfolio.settings import UserSettings

logger = logging.getLogger(__name__)


class RuleMisconfigurationError(ValueError):
    """A rule option that cannot be used as given."""


@dataclass(frozen=True)
class RuleSettings:
    is_active: bool = True


@dataclass(frozen=True)
class Evaluation:
    evaluation: str
    value: bool
    metrics: dict[str, float] = field(default_factory=dict)


def parse_bool(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    raise RuleMisconfigurationError(f"expected true/false, got {raw!r}")


def parse_ratio(raw: Any) -> float:
    """A share between 0 and 1 (inclusive)."""
    if isinstance(raw, bool) or not isinstance(raw, (int, float, str)):
        raise RuleMisconfigurationError(f"expected a number, got {raw!r}")
    try:
        share = float(raw)
    except ValueError as e:
        raise RuleMisconfigurationError(f"expected a number, got {raw!r}") from e
    if math.isnan(share) or share < 0 or share > 1:
        raise RuleMisconfigurationError(f"{share} is outside 0..1")
    return share


class Rule(ABC):
    key: str
    name: str
    category: str
    # Last-resort defaults when config/config.yaml has no usable value
    default_options: dict[str, Any] = {"is_active": True}

    def __init__(self):
        self.config_options = dict(app_config.get("rules", {}).get(self.key) or {})

    @abstractmethod
    def get_settings(self, user_settings: UserSettings) -> RuleSettings:
        """Derive this rule's settings from the user's preferences."""
        ...

    @abstractmethod
    def evaluate(self, settings: RuleSettings, positions: CurrentPositions) -> Evaluation:
        ...

    def option(self, user_settings: UserSettings, name: str, parse: Callable[[Any], Any]) -> Any:
        """Resolve one option: user override, then config, then class default.

        Unusable values are logged and skipped, never raised.
        """
        layers = (
            ("user", user_settings.overrides_for(self.key)),
            ("config", self.config_options),
            ("default", self.default_options),
        )
        for source, options in layers:
            if name not in options:
                continue
            try:
                return parse(options[name])
            except RuleMisconfigurationError as e:
                logger.warning(f"Rule {self.key}: ignoring {source} value for {name}: {e}")
        raise KeyError(f"Rule {self.key} has no default for {name}")

    def is_active(self, user_settings: UserSettings) -> bool:
        return self.option(user_settings, "is_active", parse_bool)


def no_positions() -> Evaluation:
    return Evaluation(evaluation="There are no positions to evaluate", value=False)
