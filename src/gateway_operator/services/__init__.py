"""Services shared by the controllers: owned children, certificates, events, webhook."""

from . import ca_manager
from . import certificates
from . import events
from . import owned_resources
from . import webhook

__all__ = ["ca_manager", "certificates", "events", "owned_resources", "webhook"]
