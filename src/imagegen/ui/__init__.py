"""Client-side session layer for Imagegen.

Holds the generation form, the displayed image and the history of images
generated during one session.  Rendering is left to the frontend; this
package only manages state, handles and the HTTP conversation with the API.
"""

from .models import GeneratedImageRecord, GenerationSettings, SessionState, Status
from .resources import HandleLifecycleError, HandleRegistry, ResourceHandle
from .session import GatewayTimeoutError, GenerationFailedError, SessionManager
from .state import SessionStateError, SessionStore

__all__ = [
    "GatewayTimeoutError",
    "GeneratedImageRecord",
    "GenerationFailedError",
    "GenerationSettings",
    "HandleLifecycleError",
    "HandleRegistry",
    "ResourceHandle",
    "SessionManager",
    "SessionState",
    "SessionStateError",
    "SessionStore",
    "Status",
]
