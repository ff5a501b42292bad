"""PowerAgent workflow graph service.

Validation and execution planning for the supervisor workflows designed
in the PowerAgent builder.
"""

__version__ = "0.1.0"
