"""safe_superform package root.

Execute Superform deposits, withdrawals and reward claims for a Safe multisig
through a P2P.org yield proxy, routed via a Zodiac Roles module.

- :py:mod:`safe_superform.executor` - the high level action orchestrators
- :py:mod:`safe_superform.zodiac.roles` - Roles module guard and execution pipeline
- :py:mod:`safe_superform.superform` - Superform API client and calldata helpers

"""

import sys


#: Minimum required Python version to run this package
MIN_PYTHON_VERSION = (3, 10)


def _check_python_version():
    """Try early abort if the Python version is too old."""

    # Use Python tuple comparison for version numbers
    # https://stackoverflow.com/a/1093331/315168
    if sys.version_info < MIN_PYTHON_VERSION:
        raise RuntimeError(f"safe-superform-executor needs Python {MIN_PYTHON_VERSION[0]}.{MIN_PYTHON_VERSION[1]} or later")


_check_python_version()
