"""Event subscribers: route emitted events to their destinations."""
