# Ensure registration happens by importing modules
from .base import ActionHandler, ActionOutcome, action_registry, register  # noqa
from . import (  # noqa
    add_fixed,
    add_percentage,
    multiply,
    bounds,
    replace,
)
