from .accounts import *  # noqa: F401,F403
from .chain import *  # noqa: F401,F403
from .client import *  # noqa: F401,F403
