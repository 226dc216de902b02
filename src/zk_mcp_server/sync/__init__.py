"""Watch-driven mirror of a remote ZooKeeper tree.

Public API for keeping a local view of a ZooKeeper namespace current and
for observing its changes as ADD / UPDATE / DELETE events.

Modules:

- ``engine``    -- ``SyncEngine``: watch re-arming, classification and the
  tree mutators (create, delete, trim, prune).
- ``registry``  -- ``NodeRegistry``: known-path set and listener dispatch.
- ``models``    -- ``EventType``, ``SyncEvent``: event data contracts.
- ``paths``     -- Path arithmetic helpers.
- ``recorder``  -- ``EventRecorder``: bounded, sequence-numbered history.
- ``watchlist`` -- ``WatchList``: explicit and pattern-based node watches.

Usage example
-------------
::

    from zk_mcp_server.core.client import ZooKeeperClient
    from zk_mcp_server.sync import EventRecorder, SyncEngine

    client = ZooKeeperClient(config)
    client.start()

    engine = SyncEngine(client)
    recorder = EventRecorder()
    engine.add_listener(recorder)
    engine.watch()

    engine.create("/app/config/feature")
    for event in recorder.since(0):
        print(event.seq, event.type.value, event.path)
"""

from .engine import SyncEngine
from .models import EventType, Listener, SyncEvent
from .recorder import EventRecorder, RecordedEvent
from .registry import NodeRegistry
from .watchlist import WatchEntry, WatchList

__all__ = [
    "EventRecorder",
    "EventType",
    "Listener",
    "NodeRegistry",
    "RecordedEvent",
    "SyncEngine",
    "SyncEvent",
    "WatchEntry",
    "WatchList",
]
