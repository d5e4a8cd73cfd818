
import unittest
from pathlib import Path
import tempfile

import sys
sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from fakes import FakeCatalog, FakeSourceConnection, RecordingConnection, make_rows
from tools.db_migrator import DBMigrator

SOURCE_URL = "postgresql://reader:pw@source/app"
TARGET_URL = "postgresql://writer:pw@target/app"


class TestDryRunSafety(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.out = Path(self.tmp.name)

        tables = {'ghost_table': make_rows(3)}
        self.catalog = FakeCatalog(
            tables=tables,
            columns={'ghost_table': [{'column_name': 'id', 'data_type': 'integer', 'is_nullable': 'NO'}]},
            functions=[{'name': 'f', 'definition': 'CREATE FUNCTION f() RETURNS int AS $$ SELECT 1 $$ LANGUAGE sql'}],
            triggers=[{'name': 'trg', 'table_name': 'ghost_table',
                       'definition': 'CREATE TRIGGER trg AFTER INSERT ON public.ghost_table '
                                     'FOR EACH ROW EXECUTE FUNCTION f()'}],
        )
        self.source = FakeSourceConnection(tables)
        self.target = RecordingConnection()
        connections = {SOURCE_URL: self.source, TARGET_URL: self.target}
        self.migrator = DBMigrator(
            SOURCE_URL, TARGET_URL, output_dir=str(self.out), dry_run=True,
            connection_factory=lambda url: connections[url],
            catalog_factory=lambda connection, log: self.catalog,
        )

    def tearDown(self):
        self.tmp.cleanup()

    def test_dry_run_no_writes(self):
        # Every live command in dry-run mode
        result = self.migrator.migrate_all(include_data=True)

        self.assertTrue(result.success)
        self.assertEqual(self.target.executed, [], "Dry Run FAILED: statements reached the target!")
        # Rows are only counted, never paged out of the source
        self.assertEqual(self.source.page_params(), [])

    def test_dry_run_truncate_is_skipped(self):
        self.migrator.migrate_data(truncate=True)
        self.assertFalse(any(sql.startswith('TRUNCATE') for sql in self.target.statements))

    def test_dry_run_import_never_executes(self):
        migration_dir = self.out / 'export'
        (migration_dir / 'data').mkdir(parents=True)
        (migration_dir / 'schema-public.sql').write_text('CREATE SCHEMA public;', encoding='utf-8')
        (migration_dir / 'data' / 'public.ghost_table.sql').write_text(
            'INSERT INTO "public"."ghost_table" ("id") VALUES (1) ON CONFLICT DO NOTHING;', encoding='utf-8')

        with self.assertLogs('tools.db_migrator', level='INFO') as cm:
            result = self.migrator.import_migrations(str(migration_dir))

        self.assertTrue(result.success)
        self.assertEqual(len(result.steps), 2)
        self.assertEqual(self.target.executed, [])
        self.assertTrue(any('[DRY RUN] Would execute:' in line for line in cm.output))


if __name__ == '__main__':
    unittest.main()
