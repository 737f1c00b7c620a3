# Ensure registration happens by importing modules
from . import (  # noqa
    normalization,
    volume,
    transport,
    access,
    labor,
    risk,
    temporal,
    cross_selling,
)
