from .breakdown_composer import BreakdownComposer  # noqa
from .details import rule_calculation_details  # noqa
