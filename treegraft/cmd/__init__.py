"""
treegraft subcommands
"""

# License: BSD3

from . import (draw,
               merge)

SUBCOMMANDS = [merge, draw]
