"""Allow ``python -m pyqt_logconsole``."""

from pyqt_logconsole.cli import main

if __name__ == '__main__':
    main()
