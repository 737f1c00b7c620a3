"""Move quote pricing pipeline: modules, schedulers, scenarios and signed prices."""

__version__ = "0.1.0"
