"""m365 - Microsoft 365 / Microsoft Graph command-line client.

Mail, calendar and drive access for the signed-in user, with paginated
list output and external ``m365-<name>`` plugins.
"""

__all__ = ["main"]

APP_ID = "m365"
PURPOSE = "Microsoft 365 / Microsoft Graph CLI tool"
__version__ = "0.1.0"


def main(argv=None) -> int:
    from .cli.main import main as _main

    return _main(argv)
