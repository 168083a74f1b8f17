"""Storage context: storage systems mirrored from a remote controller.

Tracks the containers, processing buffers and terminals of each registered
storage system and keeps them in step with what the controller reports.
"""

from protean.domain import Domain

from storage.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

# Domain Composition Root
storage = Domain(name="storage")
