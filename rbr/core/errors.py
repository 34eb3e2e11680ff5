"""Process exit codes.

Every command maps its failure to one of these codes. Branch commands exit
with the code of the step that failed, so a failed branch is observable from
its own process status.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands.

    These values are used as process exit codes and should remain stable:
    - 0: Success (a skipped formula bump also counts as success)
    - 1: User error (bad arguments, unrecognized release event)
    - 2: Environment error (unreadable config, missing tool)
    - 3: Build error (checkout or compile failed)
    - 4: Packaging error (rename, compress, checksum)
    - 5: Publish error (auth, upload)
    - 6: Formula error (bump request could not be submitted)
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    BUILD_ERROR = 3
    PACKAGING_ERROR = 4
    PUBLISH_ERROR = 5
    FORMULA_ERROR = 6

