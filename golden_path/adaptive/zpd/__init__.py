"""
Zone of Proximal Development Regulator
"""
from .zpd_regulator import ZPDRegulator, ZPDZone, ZPDCompetency, ZPDRange

__all__ = [
    "ZPDRegulator",
    "ZPDZone",
    "ZPDCompetency",
    "ZPDRange",
]
