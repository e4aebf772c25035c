# tests/test_logging_util.py

import logging
import unittest

from chat_common.logging_util import LOG_FORMAT, setup_logger


class SetupLoggerTests(unittest.TestCase):
    def tearDown(self):
        logging.getLogger("chat.tests.setup").handlers.clear()

    def test_handler_is_attached_once(self):
        first = setup_logger("chat.tests.setup", "DEBUG")
        second = setup_logger("chat.tests.setup", "ERROR")
        self.assertIs(first, second)
        self.assertEqual(len(first.handlers), 1)
        self.assertEqual(first.level, logging.DEBUG)
        self.assertEqual(first.handlers[0].formatter._fmt, LOG_FORMAT)


if __name__ == "__main__":
    unittest.main()
