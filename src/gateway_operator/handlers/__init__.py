"""kopf handlers translating watch events into controller work queue keys."""

from . import controlplane_handler
from . import dataplane_handler
from . import gateway_handler
from . import watch

__all__ = ["controlplane_handler", "dataplane_handler", "gateway_handler", "watch"]
