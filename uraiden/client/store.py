"""Channel records of the client are saved in a sqlite database, one JSON document per
(sender, receiver) pair."""
import json
import logging
import os
import sqlite3
from typing import List, Optional

from .channel import Channel, channel_key

log = logging.getLogger(__name__)


DB_CREATION_SQL = """
CREATE TABLE IF NOT EXISTS `channels` (
    `key`   TEXT    NOT NULL,
    `value` TEXT    NOT NULL,
    PRIMARY KEY (`key`)
);
"""

SAVE_CHANNEL_SQL = """
INSERT OR REPLACE INTO `channels` VALUES (
    ?,
    ?
)
"""

LOAD_CHANNEL_SQL = 'SELECT `value` FROM `channels` WHERE `key` = ?'

DEL_CHANNEL_SQL = 'DELETE FROM `channels` WHERE `key` = ?'


class ChannelStore(object):
    """Persists channel records keyed by the literal `"{sender}|{receiver}"` pair.

    There is no locking: the last `save` wins, also across clients sharing the file.
    """

    def __init__(self, filename: str = ':memory:'):
        self.filename = filename
        self.conn = sqlite3.connect(self.filename)
        if filename not in (None, ':memory:'):
            os.chmod(filename, 0o600)
        self.conn.executescript(DB_CREATION_SQL)
        self.conn.commit()

    def load(self, sender: str, receiver: str) -> Optional[Channel]:
        c = self.conn.cursor()
        c.execute(LOAD_CHANNEL_SQL, [channel_key(sender, receiver)])
        row = c.fetchone()
        if row is None:
            return None
        try:
            return Channel.from_dict(json.loads(row[0]))
        except (ValueError, KeyError, TypeError) as e:
            log.warning(
                'Ignoring malformed channel record for sender %s, receiver %s (%s)',
                sender,
                receiver,
                e
            )
            return None

    def save(self, channel: Channel):
        self.conn.execute(SAVE_CHANNEL_SQL, [channel.key, json.dumps(channel.to_dict())])
        self.conn.commit()

    def forget(self, sender: str, receiver: str):
        self.conn.execute(DEL_CHANNEL_SQL, [channel_key(sender, receiver)])
        self.conn.commit()

    def keys(self) -> List[str]:
        c = self.conn.cursor()
        c.execute('SELECT `key` FROM `channels` ORDER BY `key`')
        return [row[0] for row in c.fetchall()]

    def close(self):
        self.conn.close()
