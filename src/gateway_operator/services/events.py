"""Kubernetes events emitted on behalf of the reconcilers."""

import logging

import kopf

logger = logging.getLogger(__name__)


class EventRecorder:
    """Posts events about an object through kopf's event poster."""

    def normal(self, obj, reason, message):
        self.event(obj, "Normal", reason, message)

    def warning(self, obj, reason, message):
        self.event(obj, "Warning", reason, message)

    def event(self, obj, event_type, reason, message):
        metadata = obj.get("metadata", {})
        logger.debug(
            f"{event_type} event for {obj.get('kind')} "
            f"{metadata.get('namespace')}/{metadata.get('name')}: {reason}: {message}"
        )
        try:
            kopf.event(obj, type=event_type, reason=reason, message=message)
        except LookupError:
            # Outside of a running operator there is no event queue to post to
            logger.warning(f"Event poster unavailable, dropped {reason} event: {message}")
