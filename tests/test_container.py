import logging
import unittest

from nestsync.db.models import Node
from nestsync.di.container import build_session, build_tree_mapper, configure_logging
from nestsync.services.tree_mapper import TreeMapper
from tests.conftest import make_test_app_config


class TestContainer(unittest.TestCase):
    def setUp(self) -> None:
        self.cfg = make_test_app_config(children_key_name="items", key_name="uuid")
        self.db = build_session(self.cfg)

    def tearDown(self) -> None:
        self.db.close()

    def test_build_tree_mapper_uses_config(self) -> None:
        mapper = build_tree_mapper(self.cfg, db=self.db)

        self.assertIsInstance(mapper, TreeMapper)
        self.assertEqual(mapper.children_key_name, "items")
        self.assertEqual(mapper.key_name, "uuid")
        self.assertEqual(mapper.runner.max_retries, 0)

    def test_built_mapper_reads_configured_keys(self) -> None:
        mapper = build_tree_mapper(self.cfg, db=self.db)

        result = mapper.map([{"uuid": 10, "name": "top", "items": [{"uuid": 11, "name": "leaf"}]}])

        self.assertTrue(result.success)
        self.assertEqual(Node.get_by_id(11).parent_id, 10)
        self.assertEqual(
            mapper.get_tree(), [{"uuid": 10, "name": "top", "items": [{"uuid": 11, "name": "leaf"}]}]
        )

    def test_configure_logging_stdlib_backend(self) -> None:
        root = logging.getLogger()
        saved = list(root.handlers), root.level
        try:
            configure_logging(self.cfg)
            self.assertEqual(root.level, logging.DEBUG)
        finally:
            root.handlers[:] = saved[0]
            root.setLevel(saved[1])
