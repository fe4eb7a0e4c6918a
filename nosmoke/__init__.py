"""NoSmoke Days core library: quit tracking and the daily check-in ritual.

Public API re-exports for convenient imports:
    from nosmoke import QuitTracker, JsonFileStore, SystemClock, ...
"""

# Workspace & config
from nosmoke.config import (
    Profile,
    workspace_root,
    load_profile,
    write_default_profile,
    profile_path,
    state_path,
    log_path,
)

# Collaborators
from nosmoke.clock import Clock, SystemClock, FixedClock
from nosmoke.store import KeyValueStore, MemoryStore, JsonFileStore, StoreError

# Milestones & benefits
from nosmoke.milestones import (
    MILESTONE_DAYS,
    HEALTH_BENEFITS,
    next_milestone,
    progress_to_milestone,
    unlocked_health_benefits,
)

# Tracker
from nosmoke.tracker import QuitTracker, load_session, save_session

# Quit-date input
from nosmoke.quitdate import parse_quit_date, validate_quit_date, read_quit_date

# Models
from nosmoke.models import (
    QuitSession,
    ElapsedTime,
    MilestoneProgress,
    HealthBenefit,
    PersistenceWarning,
    MutationResult,
    TrackerStatus,
)
