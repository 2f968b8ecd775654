"""
Installer service — package re-exports.

This ``__init__.py`` re-exports every public symbol so that callers
need only one import::

    from orchestrate_install.core.services.installer import Orchestrator, resolve

Each symbol lives in its single-responsibility module inside the
appropriate onion layer (data → domain → resolver → detection →
execution → orchestration).
"""

# ── L0: Data ──
from orchestrate_install.core.services.installer.data.catalog import (  # noqa: F401
    PACKAGE_CATALOG,
    get_recipe,
)

# ── L1: Domain ──
from orchestrate_install.core.services.installer.domain.error_analysis import (  # noqa: F401
    apt_repair_step,
    categorize_failure,
)
from orchestrate_install.core.services.installer.domain.version_constraint import (  # noqa: F401
    check_version_constraint,
    parse_constraint,
    satisfies,
)

# ── L2: Resolver ──
from orchestrate_install.core.services.installer.resolver.strategy import (  # noqa: F401
    resolve,
)

# ── L3: Detection ──
from orchestrate_install.core.services.installer.detection.capabilities import (  # noqa: F401
    probe,
    probe_manager,
)
from orchestrate_install.core.services.installer.detection.environment import (  # noqa: F401
    classify,
)
from orchestrate_install.core.services.installer.detection.installed import (  # noqa: F401
    check_present,
)

# ── L4: Execution ──
from orchestrate_install.core.services.installer.execution.executor import (  # noqa: F401
    InstallerExecutor,
)
from orchestrate_install.core.services.installer.execution.subprocess_runner import (  # noqa: F401
    run_command,
    run_query,
)

# ── L5: Orchestration ──
from orchestrate_install.core.services.installer.orchestration.orchestrator import (  # noqa: F401
    Orchestrator,
)
