"""World Handicap System engine: differentials, indexes and player timelines."""

__version__ = "0.1.0"
