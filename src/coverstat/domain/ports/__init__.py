"""Domain ports: interfaces implemented by infrastructure."""

from coverstat.domain.ports.driver import DriverPort
from coverstat.domain.ports.reporter import ReporterProtocol
from coverstat.domain.ports.structure_parser import StructureParserPort

__all__ = [
    "DriverPort",
    "ReporterProtocol",
    "StructureParserPort",
]
