"""
Contract descriptor layer: a descriptor file names a params file and a
template file by location and hash; loading resolves and verifies both.
"""

from .formats import FileFormat, detect_format, read_data
from .loader import ResolvedContract, UpdateResult, load_contract, parse_descriptor, update_contract
from .model import ContractDescriptor, FileRefModel, TemplateModel

__all__ = [
    "ContractDescriptor",
    "FileRefModel",
    "TemplateModel",
    "FileFormat",
    "detect_format",
    "read_data",
    "ResolvedContract",
    "UpdateResult",
    "parse_descriptor",
    "load_contract",
    "update_contract",
]
