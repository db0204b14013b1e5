"""ObservatoryEventLinker: isolated event namespace for observatory events.

All observatory subscribers register here. Separate from any other
pyventus usage in the process (including the instrumented tool server).
"""

from __future__ import annotations

from pyventus.events import EventLinker


class ObservatoryEventLinker(EventLinker):
    """Isolated event namespace for observatory observability."""

    pass
