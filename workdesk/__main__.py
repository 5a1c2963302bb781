# -*- coding: utf-8 -*-
"""Allows `python -m workdesk`"""

from workdesk.cli.main import main

if __name__ == "__main__":
    main()
