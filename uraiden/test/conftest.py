from uraiden.test.fixtures import *  # noqa: F401,F403
import logging

# polling chatter of the transaction waiter
logging.getLogger('uraiden.utils.contract').setLevel(logging.INFO)
