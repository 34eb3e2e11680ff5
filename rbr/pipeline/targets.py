from __future__ import annotations

from rbr.pipeline.model import ArchiveFormat, BuildTarget, SidecarFormat, Toolchain


LINUX_MUSL = BuildTarget(
    platform="linux",
    architecture_triple="x86_64-unknown-linux-musl",
    toolchain=Toolchain.CONTAINER,
    archive_format=ArchiveFormat.TAR_GZ,
    sidecar_format=SidecarFormat.BARE_DIGEST,
)

WINDOWS_GNU = BuildTarget(
    platform="windows",
    architecture_triple="x86_64-pc-windows-gnu",
    toolchain=Toolchain.CROSS_LINKER,
    archive_format=ArchiveFormat.ZIP,
    sidecar_format=SidecarFormat.BARE_DIGEST,
    exe_suffix=".exe",
)

MACOS = BuildTarget(
    platform="macos",
    architecture_triple="x86_64-apple-darwin",
    toolchain=Toolchain.CONTAINER,
    archive_format=ArchiveFormat.ZIP,
    # The macOS sidecar also names the archive; the other two carry only the digest.
    sidecar_format=SidecarFormat.DIGEST_AND_NAME,
    container_env=(("CC", "o64-clang"), ("CXX", "o64-clang++")),
)

ALL_TARGETS: tuple[BuildTarget, ...] = (LINUX_MUSL, WINDOWS_GNU, MACOS)

# The formula bump is joined on this branch only.
FORMULA_GATE_TARGET = MACOS

# Installed cross-linker required by the Windows target.
MINGW_LINKER = "x86_64-w64-mingw32-gcc"


def target_for(platform: str) -> BuildTarget | None:
    for target in ALL_TARGETS:
        if target.platform == platform:
            return target
    return None


def platform_names() -> tuple[str, ...]:
    return tuple(t.platform for t in ALL_TARGETS)
