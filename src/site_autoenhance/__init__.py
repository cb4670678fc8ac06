"""Site auto-enhancer.

Periodically picks one of a website's stylesheets, scripts or pages, applies
a small idempotent improvement, records it in an append-only history and
publishes it, switching the site into maintenance mode when changes come too
fast.
"""

__version__ = "0.3.0"

from site_autoenhance.infrastructure.config import EnhancerConfig, default_config, load_config
from site_autoenhance.services.engine import CycleResult, MutationEngine
from site_autoenhance.services.scheduler import Scheduler

__all__ = [
    "CycleResult",
    "EnhancerConfig",
    "MutationEngine",
    "Scheduler",
    "default_config",
    "load_config",
]
