from pathlib import Path
from typing import List

from lief import MachO

from masverify.src.core.errors import MetadataParseError

# lief CPU_TYPE member names -> names lipo prints
_LIPO_NAMES = {
    "ARM64": "arm64",
    "X86_64": "x86_64",
    "X86": "i386",
    "ARM": "arm",
}


def read_architectures(binary_path: Path) -> List[str]:
    """List the CPU architectures of a thin or fat Mach-O file."""
    parsed = MachO.parse(str(binary_path))
    if parsed is None:
        raise MetadataParseError(f"Not a Mach-O file: {binary_path}")

    architectures = []
    for binary in parsed:
        cpu = str(binary.header.cpu_type).rsplit(".", 1)[-1]
        architectures.append(_LIPO_NAMES.get(cpu, cpu.lower()))

    if not architectures:
        raise MetadataParseError(f"No architectures found in {binary_path}")
    return architectures


def describe_architectures(binary_path: Path) -> str:
    """Produce the same one-line summary as ``lipo -info``."""
    architectures = read_architectures(binary_path)
    if len(architectures) > 1:
        return (
            f"Architectures in the fat file: {binary_path} are: "
            f"{' '.join(architectures)}"
        )
    return f"Non-fat file: {binary_path} is architecture: {architectures[0]}"
