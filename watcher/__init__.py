"""
watcher/ - Head-state watcher service.

Modules:
- config: WatcherConfig and YAML loading
- state: ChainState (tip, height, balances)
- sync: Synchronization routines
- heartbeat: Periodic tick scheduler
- lifecycle: STOPPED/STARTING/STARTED/STOPPING state machine
- service: WatcherService, the public entry point
- admin: Administrative server collaborator interface
- diagnostics: Interpreter self-test
"""

from watcher.config import WatcherConfig, load_watcher_config
from watcher.heartbeat import HeartbeatScheduler
from watcher.lifecycle import LifecycleStateMachine, StateTransition, VALID_TRANSITIONS
from watcher.service import WatcherService
from watcher.state import ChainState
from watcher.sync import SyncRoutines, decode_quantity, encode_quantity

__all__ = [
    "ChainState",
    "HeartbeatScheduler",
    "LifecycleStateMachine",
    "StateTransition",
    "SyncRoutines",
    "VALID_TRANSITIONS",
    "WatcherConfig",
    "WatcherService",
    "decode_quantity",
    "encode_quantity",
    "load_watcher_config",
]
