"""Edit-rule registry for the site auto-enhancer.

Rules are plain callables ``rule(content) -> EditPlan`` registered by
*artifact type* and *category name* -- either via the
``@registry.register(...)`` decorator or the imperative
``registry.register_rule(...)`` API.

There is no global singleton: the engine receives a registry at
construction, and :func:`site_autoenhance.services.rules.default_registry`
builds a fresh one holding the built-in rules.  Tests or custom deployments
can instantiate their own ``RuleRegistry``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from site_autoenhance.domain.edits import EditPlan
from site_autoenhance.domain.enums import ArtifactType

logger = logging.getLogger(__name__)

Rule = Callable[[str], EditPlan]


class RuleRegistry:
    """Rule lookup keyed by ``(artifact_type, category)`` pairs.

    Usage -- decorator style::

        @registry.register(ArtifactType.STYLESHEET, "responsiveness")
        def small_screens(content: str) -> EditPlan:
            ...

    Usage -- imperative style::

        registry.register_rule(ArtifactType.SCRIPT, "error-fix", guard_rule)
    """

    def __init__(self) -> None:
        # artifact type -> category -> rule
        self._rules: dict[ArtifactType, dict[str, Rule]] = {}

    # ------------------------------------------------------------------ #
    #  Registration                                                       #
    # ------------------------------------------------------------------ #

    def register(
        self,
        artifact_type: ArtifactType,
        category: str,
        *,
        overwrite: bool = False,
    ) -> Callable[[Rule], Rule]:
        """Decorator that registers the decorated function under
        ``(artifact_type, category)``.

        Raises ``ValueError`` on duplicates unless *overwrite* is set.
        """

        def decorator(fn: Rule) -> Rule:
            self._set(artifact_type, category, fn, overwrite=overwrite)
            return fn

        return decorator

    def register_rule(
        self,
        artifact_type: ArtifactType,
        category: str,
        rule: Rule,
        *,
        overwrite: bool = False,
    ) -> None:
        """Imperatively register *rule*."""
        self._set(artifact_type, category, rule, overwrite=overwrite)

    # ------------------------------------------------------------------ #
    #  Lookup                                                              #
    # ------------------------------------------------------------------ #

    def get(self, artifact_type: ArtifactType, category: str) -> Rule | None:
        """Return the rule for the pair, or ``None`` when nothing is registered."""
        return self._rules.get(artifact_type, {}).get(category)

    def has(self, artifact_type: ArtifactType, category: str) -> bool:
        return category in self._rules.get(artifact_type, {})

    def categories_for(self, artifact_type: ArtifactType) -> list[str]:
        """Return the category names that have a rule for *artifact_type*."""
        return list(self._rules.get(artifact_type, {}).keys())

    def count(self, artifact_type: ArtifactType | None = None) -> int:
        """Count registered rules, optionally for a single artifact type."""
        if artifact_type is not None:
            return len(self._rules.get(artifact_type, {}))
        return sum(len(rules) for rules in self._rules.values())

    def copy(self) -> RuleRegistry:
        """Return an independent registry holding the same rules."""
        clone = RuleRegistry()
        clone._rules = {t: dict(rules) for t, rules in self._rules.items()}
        return clone

    # ------------------------------------------------------------------ #
    #  Internal helpers                                                    #
    # ------------------------------------------------------------------ #

    def _set(
        self,
        artifact_type: ArtifactType,
        category: str,
        rule: Rule,
        *,
        overwrite: bool = False,
    ) -> None:
        bucket = self._rules.setdefault(artifact_type, {})
        if not overwrite and category in bucket:
            raise ValueError(
                f"Rule '{artifact_type.value}/{category}' is already registered as "
                f"{bucket[category]!r}. Pass overwrite=True to replace."
            )
        bucket[category] = rule
        logger.debug("Registered rule %s/%s: %r", artifact_type.value, category, rule)

    # ------------------------------------------------------------------ #
    #  Dunder helpers                                                      #
    # ------------------------------------------------------------------ #

    def __repr__(self) -> str:
        parts = [f"{t.value}({len(rs)})" for t, rs in self._rules.items()]
        return f"<RuleRegistry [{', '.join(parts)}]>"

    def __contains__(self, key: object) -> bool:
        """Support ``(ArtifactType.SCRIPT, "error-fix") in registry``."""
        if not isinstance(key, tuple) or len(key) != 2:
            return False
        artifact_type, category = key
        if not isinstance(artifact_type, ArtifactType):
            return False
        return self.has(artifact_type, category)
