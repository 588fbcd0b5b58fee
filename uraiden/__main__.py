import logging

from uraiden.cli import main

if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    main()
