import unittest

from tests.support import ApiTestCase


class DirectoryTests(ApiTestCase):
    def test_lists_everyone_but_self_by_name(self):
        me, headers, _ = self.signup("Marina")
        zoe = self.register("Zoe")
        adi = self.register("Adi")

        resp = self.client.get("/api/profiles", headers=headers)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(
            resp.json(),
            [{"id": adi["id"], "display_name": "Adi"}, {"id": zoe["id"], "display_name": "Zoe"}],
        )

    def test_empty_directory(self):
        _, headers, _ = self.signup("Lonely")
        resp = self.client.get("/api/profiles", headers=headers)
        self.assertEqual(resp.json(), [])

    def test_recipient_lookup(self):
        _, headers, _ = self.signup("Marina")
        zoe = self.register("Zoe")

        resp = self.client.get(f"/api/profiles/{zoe['id']}", headers=headers)
        self.assertEqual(resp.json(), {"id": zoe["id"], "display_name": "Zoe"})

    def test_unknown_recipient_redirects_home(self):
        _, headers, _ = self.signup("Marina")
        resp = self.client.get("/api/profiles/9999", headers=headers)
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["redirect"], "/")


if __name__ == "__main__":
    unittest.main()
