# -------------------------------------------------------------------------
# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License. See License.txt in the project root for
# license information.
# --------------------------------------------------------------------------
"""Prepare development environment
"""

import os
import sys
from subprocess import check_call, CalledProcessError

repo_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def pip_command(command, error_ok=False):
    try:
        print("Executing: " + command)
        check_call([sys.executable, "-m", "pip"] + command.split(), cwd=repo_root)
        print()

    except CalledProcessError as err:
        print(err)
        if not error_ok:
            sys.exit(1)


if __name__ == "__main__":
    # Make sure pip is on the latest version
    pip_command("install --upgrade pip")

    # Use an eager upgrade strategy to make sure we have all the latest dependencies.
    # This way we will be running into any dependency-related bugs before customers do.
    pip_command("install -U --upgrade-strategy eager -e .[test]")
