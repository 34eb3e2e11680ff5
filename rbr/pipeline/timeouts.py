from __future__ import annotations

# Local git operations (clone from the local source root, checkout)
GIT_TIMEOUT_SECONDS = 5 * 60.0

# rustup target installation (network-bound)
RUSTUP_TIMEOUT_SECONDS = 10 * 60.0

# Full release compile, containerized or cross-linked
COMPILE_TIMEOUT_SECONDS = 60 * 60.0

# GH / API operations
GH_TIMEOUT_SECONDS = 60.0
GH_UPLOAD_TIMEOUT_SECONDS = 15 * 60.0

# brew bump-formula-pr (taps the formula repo, forks, pushes)
BREW_TIMEOUT_SECONDS = 20 * 60.0
