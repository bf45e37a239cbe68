import datetime as dt
import unittest
from unittest.mock import patch

import pytz

from dashtiles.config import Settings, parse_timestamp
from dashtiles.tools.moon_tools.moon_phase import LUNAR_CYCLE_DAYS, REFERENCE_NEW_MOON
from dashtiles.utils.custom_exception import InputError


class TestSettings(unittest.TestCase):
    @patch("dashtiles.config.dotenv.load_dotenv")
    def test_defaults(self, _load) -> None:
        with patch.dict("os.environ", {}, clear=True):
            settings = Settings.from_env()
        self.assertEqual(settings.storage_key, "customWidgets")
        self.assertEqual(settings.reference_new_moon, REFERENCE_NEW_MOON)
        self.assertEqual(settings.cycle_length_days, LUNAR_CYCLE_DAYS)
        self.assertIsNone(settings.phase_table_url)

    @patch("dashtiles.config.dotenv.load_dotenv")
    def test_environment_overrides(self, _load) -> None:
        env = {
            "DASHTILES_WEATHER_LOCATION": "Oslo",
            "DASHTILES_REFERENCE_NEW_MOON": "2025-10-21T00:00:00Z",
            "DASHTILES_CYCLE_LENGTH_DAYS": "29.53",
            "DASHTILES_STOPWATCH_PERIOD": "0.05",
            "DASHTILES_PHASE_TABLE_URL": "https://example.test/moon.json",
        }
        with patch.dict("os.environ", env, clear=True):
            settings = Settings.from_env()
        self.assertEqual(settings.weather_location, "Oslo")
        self.assertEqual(settings.reference_new_moon, dt.datetime(2025, 10, 21, tzinfo=dt.timezone.utc))
        self.assertEqual(settings.cycle_length_days, 29.53)
        self.assertEqual(settings.stopwatch_period, 0.05)
        self.assertEqual(settings.phase_table_url, "https://example.test/moon.json")

    @patch("dashtiles.config.dotenv.load_dotenv")
    def test_bad_numbers_are_input_errors(self, _load) -> None:
        with patch.dict("os.environ", {"DASHTILES_HTTP_TIMEOUT": "soon"}, clear=True):
            with self.assertRaises(InputError):
                Settings.from_env()

    def test_parse_timestamp(self) -> None:
        self.assertIs(parse_timestamp("2024-01-11T11:57:00").tzinfo, pytz.utc)
        self.assertEqual(parse_timestamp("2024-01-11T11:57:00Z"), dt.datetime(2024, 1, 11, 11, 57, tzinfo=pytz.utc))
        with self.assertRaises(InputError):
            parse_timestamp("yesterday")


if __name__ == "__main__":
    unittest.main()
