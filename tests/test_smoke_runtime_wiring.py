from __future__ import annotations

import unittest

try:
    import discord
except ModuleNotFoundError:
    discord = None

if discord is not None:
    from scripts import smoke_runtime_wiring


@unittest.skipIf(discord is None, "discord.py not installed")
class SmokeRuntimeWiringTests(unittest.TestCase):
    def test_smoke_check_passes_from_installed_imports(self):
        self.assertEqual(smoke_runtime_wiring._main(), 0)


if __name__ == "__main__":
    unittest.main()
