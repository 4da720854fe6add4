from __future__ import annotations

import logging
from collections.abc import MutableMapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError
from ruamel.yaml.scalarstring import DoubleQuotedScalarString, SingleQuotedScalarString

from ..addressing import AddressKind, classify
from ..errors import ContractError
from ..resolver import Resolver
from ..types import FileReference, RelativeRef
from .formats import FileFormat, detect_format, read_data, rewrite_file
from .model import ContractDescriptor, FileRefModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedContract:
    """
    A contract descriptor with its components resolved and hash-checked.

    `upstream` is kept as declared; it is provenance, not a component.
    """
    entrypoint: FileReference
    descriptor: ContractDescriptor
    params: FileReference
    template: FileReference
    upstream: Optional[RelativeRef] = None

    @property
    def format(self) -> FileFormat:
        return detect_format(self.entrypoint.local_path)

    def read_params(self) -> Any:
        """Parse the parameters file (json/yaml/toml)."""
        return read_data(self.params.local_path, source=self.params.location)


@dataclass(frozen=True)
class UpdateResult:
    path: Path
    changed: bool
    hashes: Dict[str, str]                               # component -> current hash
    previous: Dict[str, str] = field(default_factory=dict)  # component -> replaced hash (changed ones only)


def parse_descriptor(entrypoint: FileReference) -> ContractDescriptor:
    """
    Raises:
        UnsupportedFormatError: Unknown extension (e.g. .dhall)
        ContractError: Unparseable file or invalid structure
    """
    data = read_data(entrypoint.local_path, source=entrypoint.location)
    if not isinstance(data, dict):
        raise ContractError(entrypoint.location, "descriptor must be a mapping")
    try:
        return ContractDescriptor.model_validate(data)
    except ValidationError as e:
        raise ContractError(entrypoint.location, str(e)) from e


def _resolve_component(
    resolver: Resolver,
    entrypoint: FileReference,
    declared: FileRefModel,
    check_hashes: bool,
) -> FileReference:
    ref = declared.as_ref()
    if ref.is_relative:
        return resolver.resolve_relative(entrypoint, ref, check_hashes)
    return resolver.resolve(ref.location, ref.hash, check_hashes)


def load_contract(loc: str, resolver: Resolver, check_hashes: bool = True) -> ResolvedContract:
    """
    Resolve a contract descriptor and the files it declares.

    The entrypoint itself has no declared hash. Its params and template
    files are resolved relative to it when their locations are relative,
    absolutely otherwise, with the declared hashes enforced
    (or only warned about when `check_hashes` is False).
    """
    logger.info("Loading contract: %s", loc)
    entrypoint = resolver.resolve(loc, "", False)
    descriptor = parse_descriptor(entrypoint)
    params = _resolve_component(resolver, entrypoint, descriptor.params, check_hashes)
    template = _resolve_component(resolver, entrypoint, descriptor.template.file, check_hashes)
    logger.debug("Loaded contract components: params=%s template=%s", params, template)
    return ResolvedContract(
        entrypoint=entrypoint,
        descriptor=descriptor,
        params=params,
        template=template,
        upstream=descriptor.upstream.as_ref() if descriptor.upstream else None,
    )


def _same_style(old: Any, new: str) -> str:
    # keep the quoting the author used
    if isinstance(old, DoubleQuotedScalarString):
        return DoubleQuotedScalarString(new)
    if isinstance(old, SingleQuotedScalarString):
        return SingleQuotedScalarString(new)
    return new


def _set_hash(node: Any, value: str) -> bool:
    if not isinstance(node, MutableMapping):
        return False
    old = node.get("hash")
    if old == value:
        return False
    node["hash"] = _same_style(old, value)
    return True


def update_contract(loc: str, resolver: Resolver) -> UpdateResult:
    """
    Recompute the declared hashes of a local contract and write them back.

    Locations are left exactly as written. Nothing is written when every
    hash is already current.

    Raises:
        ContractError: `loc` is not a local descriptor
        UnsupportedFormatError: A hash changed in a format that cannot be written (toml)
    """
    if classify(loc) is not AddressKind.LOCAL:
        raise ContractError(loc, "only contracts located in the local filesystem can be updated")

    contract = load_contract(loc, resolver, check_hashes=False)
    current = {"params": contract.params.hash, "template": contract.template.hash}
    declared = {
        "params": contract.descriptor.params.hash,
        "template": contract.descriptor.template.file.hash,
    }
    previous = {k: declared[k] for k in current if declared[k] != current[k]}
    path = contract.entrypoint.local_path
    if not previous:
        logger.info("Contract hashes are up to date: %s", path)
        return UpdateResult(path=path, changed=False, hashes=current)

    def transform(data: Any) -> bool:
        changed = _set_hash(data.get("params"), current["params"])
        tmpl = data.get("template")
        if isinstance(tmpl, MutableMapping):
            changed = _set_hash(tmpl.get("file"), current["template"]) or changed
        return changed

    changed = rewrite_file(path, transform)
    for name, old in previous.items():
        logger.info("Updated %s hash in %s: %s -> %s", name, path, old or "<none>", current[name])
    return UpdateResult(path=path, changed=changed, hashes=current, previous=previous)


__all__ = ["ResolvedContract", "UpdateResult", "parse_descriptor", "load_contract", "update_contract"]
