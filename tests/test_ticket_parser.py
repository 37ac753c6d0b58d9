from __future__ import annotations

import unittest

from misc.ticket_parser import UNKNOWN_TICKET_ACTION
from misc.ticket_parser import USAGE_TICKET
from misc.ticket_parser import USAGE_TICKET_CREATE
from misc.ticket_parser import USAGE_TICKET_DONE
from misc.ticket_parser import parse_ticket_args


class ParseTicketArgsTests(unittest.TestCase):
    def test_empty_shows_usage(self):
        for raw in (None, "", "   "):
            self.assertEqual(parse_ticket_args(raw).error, USAGE_TICKET)

    def test_create_with_description(self):
        req = parse_ticket_args("create Fix login | users get logged out | sometimes")
        self.assertIsNone(req.error)
        self.assertEqual(req.action, "create")
        self.assertEqual(req.title, "Fix login")
        self.assertEqual(req.description, "users get logged out | sometimes")

    def test_create_without_description(self):
        req = parse_ticket_args("CREATE   Write tests")
        self.assertEqual(req.action, "create")
        self.assertEqual(req.title, "Write tests")
        self.assertEqual(req.description, "")

    def test_create_needs_title(self):
        self.assertEqual(parse_ticket_args("create").error, USAGE_TICKET_CREATE)
        self.assertEqual(parse_ticket_args("create | only a description").error, USAGE_TICKET_CREATE)

    def test_done(self):
        self.assertEqual(parse_ticket_args("done 3").ticket_id, "3")
        self.assertEqual(parse_ticket_args("done #12 extra words").ticket_id, "12")
        self.assertEqual(parse_ticket_args("done").error, USAGE_TICKET_DONE)
        self.assertEqual(parse_ticket_args("done #").error, USAGE_TICKET_DONE)

    def test_list(self):
        req = parse_ticket_args("list")
        self.assertEqual(req.action, "list")
        self.assertIsNone(req.error)

    def test_unknown_action(self):
        req = parse_ticket_args("delete 1")
        self.assertEqual(req.action, "delete")
        self.assertEqual(req.error, UNKNOWN_TICKET_ACTION)


if __name__ == "__main__":
    unittest.main()
