"""
Entry point for running as a module: python -m canucklingo

Usage:
    python -m canucklingo            # Run web app
    python -m canucklingo --help     # Show this message

Environment:
    GEMINI_API_KEY           Gemini API key
    CANUCKLINGO_DATA_DIR     Where the notebook is stored
    CANUCKLINGO_PORT         Web server port (default 5001)
"""

import sys


def main():
    args = sys.argv[1:]

    if '--help' in args or '-h' in args:
        print(__doc__)

    else:
        # Run web app
        from .app import main as app_main
        app_main()


if __name__ == '__main__':
    main()
