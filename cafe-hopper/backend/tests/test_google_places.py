import unittest
from unittest.mock import MagicMock

import requests

from config import Configuration
from errors import CollaboratorError
from models import LatLng
from services.google_places import DETAIL_FIELDS, GooglePlacesClient, GooglePlacesError


def _response(payload=None, status=200, text=""):
    resp = MagicMock()
    resp.status_code = status
    resp.ok = 200 <= status < 300
    resp.text = text
    if isinstance(payload, Exception):
        resp.json.side_effect = payload
    else:
        resp.json.return_value = payload
    return resp


class TestGooglePlacesClient(unittest.TestCase):
    def setUp(self):
        self.cfg = Configuration(google_maps_api_key="test-key", google_maps_timeout=3)
        self.session = MagicMock()
        self.client = GooglePlacesClient(self.cfg, session=self.session)

    def test_text_search_params(self):
        self.session.get.return_value = _response({"status": "OK", "results": [{"place_id": "p1"}]})

        results = self.client.text_search(
            "verve", location=LatLng(lat=36.99, lng=-122.06), radius=5000, open_now=True
        )

        self.assertEqual(results, [{"place_id": "p1"}])
        args, kwargs = self.session.get.call_args
        self.assertTrue(args[0].endswith("/maps/api/place/textsearch/json"))
        params = kwargs["params"]
        self.assertEqual(params["query"], "verve")
        self.assertEqual(params["location"], "36.99,-122.06")
        self.assertEqual(params["radius"], 5000)
        self.assertEqual(params["type"], "cafe")
        self.assertEqual(params["opennow"], "true")
        self.assertEqual(params["key"], "test-key")
        self.assertEqual(kwargs["timeout"], 3)

    def test_text_search_without_location(self):
        self.session.get.return_value = _response({"status": "ZERO_RESULTS", "results": []})
        self.assertEqual(self.client.text_search("cafe", radius=500), [])
        params = self.session.get.call_args.kwargs["params"]
        self.assertNotIn("location", params)
        self.assertNotIn("opennow", params)

    def test_place_details_requests_fixed_fields(self):
        self.session.get.return_value = _response({"status": "OK", "result": {"name": "Verve"}})
        detail = self.client.place_details("p1")
        self.assertEqual(detail, {"name": "Verve"})
        params = self.session.get.call_args.kwargs["params"]
        self.assertEqual(params["place_id"], "p1")
        self.assertEqual(params["fields"].split(","), list(DETAIL_FIELDS))
        self.assertIn("opening_hours/periods", params["fields"])

    def test_failures_raise_collaborator_errors(self):
        cases = [
            requests.Timeout("timed out"),
            _response(status=503, text="unavailable"),
            _response(ValueError("not json")),
            _response({"status": "OVER_QUERY_LIMIT", "error_message": "quota"}),
        ]
        for case in cases:
            if isinstance(case, Exception):
                self.session.get.side_effect = case
            else:
                self.session.get.side_effect = None
                self.session.get.return_value = case
            with self.assertRaises(GooglePlacesError):
                self.client.text_search("cafe", radius=500)
        self.assertTrue(issubclass(GooglePlacesError, CollaboratorError))

    def test_place_details_requires_id(self):
        with self.assertRaises(GooglePlacesError):
            self.client.place_details("")
        self.session.get.assert_not_called()


if __name__ == "__main__":
    unittest.main()
