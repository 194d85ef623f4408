import io
import unittest

from rich.console import Console

from devsetup.constants import DOMAIN_EXPLORER, DOMAIN_FILE_LOCATIONS
from devsetup.models.results import Change, DomainResult
from devsetup.models.state import MachineState
from devsetup.ui_components import show_domain_result, state_table


def render(renderable) -> str:
    output = io.StringIO()
    Console(file=output, width=200).print(renderable)
    return output.getvalue()


class TestStateTable(unittest.TestCase):
    def setUp(self):
        self.state = MachineState(DOMAIN_FILE_LOCATIONS)
        self.state.set("DevelopmentRootExists", True)
        self.state.set("Folder:Projects", False)
        self.state.set("DEV_HOME", "/home/jane/dev")

    def test_every_snapshot_row_is_shown(self):
        change = Change("Create directory: /home/jane/dev/Projects", probe="Folder:Projects", before=False, after=True)
        result = DomainResult(DOMAIN_FILE_LOCATIONS, changes=[change], state=self.state)

        table = state_table(result)
        text = render(table)

        self.assertEqual(table.row_count, 3)
        self.assertIn("DevelopmentRootExists", text)
        self.assertIn("/home/jane/dev", text)
        self.assertIn("unchanged", text)
        self.assertIn("Create directory: /home/jane/dev/Projects", text)

    def test_change_without_snapshot_row_is_appended(self):
        restart = Change("Restart Windows Explorer", probe="ExplorerRestart", after="restarted")
        result = DomainResult(DOMAIN_EXPLORER, changes=[restart], state=MachineState(DOMAIN_EXPLORER))

        table = state_table(result)

        self.assertEqual(table.row_count, 1)
        self.assertIn("Restart Windows Explorer", render(table))

    def test_up_to_date_domain_still_shows_state_in_dry_run(self):
        output = io.StringIO()
        console = Console(file=output, width=200)
        result = DomainResult(DOMAIN_FILE_LOCATIONS, state=self.state)

        show_domain_result(result, console, show_state=True)

        text = output.getvalue()
        self.assertIn("DevelopmentRootExists", text)
        self.assertIn("already up to date", text)

        output.truncate(0)
        output.seek(0)
        show_domain_result(result, console, show_state=False)
        self.assertNotIn("DevelopmentRootExists", output.getvalue())


if __name__ == "__main__":
    unittest.main()
