"""Extension layer — plugin system via pluggy.

Discovery: entry points, then single-file plugins in the local directory.
INVARIANT: Plugin failures are warnings, never errors.
"""

from halopub.plugins.manager import PluginManager

__all__ = ["PluginManager"]
