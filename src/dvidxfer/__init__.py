"""dvidxfer — copy datasets between DVID nodes over their HTTP API."""

__version__ = "0.3.0"
