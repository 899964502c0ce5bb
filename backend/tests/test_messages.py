import unittest

from tests.support import ApiTestCase

TRACK = {
    "id": "4uLU6hMCjMI75M1A2tKUQC",
    "name": "Never Gonna Give You Up",
    "artist": "Rick Astley",
    "album_art": "https://i.scdn.co/image/cover",
    "uri": "spotify:track:4uLU6hMCjMI75M1A2tKUQC",
}


class ComposeTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.alice, self.alice_headers, _ = self.signup("Alice")
        self.bob, self.bob_headers, _ = self.signup("Bob")

    def test_message_hides_sender_identity(self):
        message = self.send_bottle(self.alice_headers, self.bob["id"], sender_alias="  A secret friend ")

        self.assertEqual(message["sender_alias"], "A secret friend")
        self.assertNotIn("sender_id", message)
        self.assertEqual(message["recipient_id"], self.bob["id"])
        self.assertTrue(message["token_id"])
        self.assertIsNone(message["spotify_embed_url"])

        received = self.inbox(self.bob_headers)["received"][0]
        self.assertNotIn("sender_id", received)
        self.assertEqual(received["sender_alias"], "A secret friend")

    def test_default_mood(self):
        resp = self.client.post(
            "/api/messages",
            json={"recipient_id": self.bob["id"], "sender_alias": "Tide", "content": "hi"},
            headers=self.alice_headers,
        )
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()["mood_emoji"], "💙")

    def test_attached_track(self):
        message = self.send_bottle(self.alice_headers, self.bob["id"], track=TRACK)

        self.assertEqual(message["spotify_track_id"], TRACK["id"])
        self.assertEqual(message["spotify_track_name"], TRACK["name"])
        self.assertEqual(message["spotify_artist"], "Rick Astley")
        self.assertEqual(message["spotify_album_art"], TRACK["album_art"])
        self.assertEqual(message["spotify_uri"], TRACK["uri"])
        self.assertEqual(
            message["spotify_embed_url"],
            "https://open.spotify.com/embed/track/4uLU6hMCjMI75M1A2tKUQC?utm_source=generator",
        )

    def test_tokens_are_unique(self):
        first = self.send_bottle(self.alice_headers, self.bob["id"])
        second = self.send_bottle(self.alice_headers, self.bob["id"])
        self.assertNotEqual(first["token_id"], second["token_id"])

    def test_blank_fields_rejected(self):
        for field in ("sender_alias", "content"):
            resp = self.client.post(
                "/api/messages",
                json={"recipient_id": self.bob["id"], "sender_alias": "Tide", "content": "hi", field: "   "},
                headers=self.alice_headers,
            )
            self.assertEqual(resp.status_code, 422, field)
        self.assertEqual(self.inbox(self.bob_headers)["received"], [])

    def test_limits_and_unknown_mood(self):
        cases = [
            {"sender_alias": "x" * 51},
            {"content": "x" * 2001},
            {"mood_emoji": "🔥"},
        ]
        for overrides in cases:
            payload = {"recipient_id": self.bob["id"], "sender_alias": "Tide", "content": "hi"}
            payload.update(overrides)
            resp = self.client.post("/api/messages", json=payload, headers=self.alice_headers)
            self.assertEqual(resp.status_code, 422, overrides)

    def test_limits_count_trimmed_text(self):
        message = self.send_bottle(
            self.alice_headers,
            self.bob["id"],
            sender_alias="  " + "x" * 50 + " ",
            content="\n" + "y" * 2000 + "  ",
        )
        self.assertEqual(message["sender_alias"], "x" * 50)
        self.assertEqual(len(message["content"]), 2000)

    def test_unknown_recipient(self):
        resp = self.client.post(
            "/api/messages",
            json={"recipient_id": 9999, "sender_alias": "Tide", "content": "hi"},
            headers=self.alice_headers,
        )
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["redirect"], "/")

    def test_cannot_message_self(self):
        resp = self.client.post(
            "/api/messages",
            json={"recipient_id": self.alice["id"], "sender_alias": "Me", "content": "hi"},
            headers=self.alice_headers,
        )
        self.assertEqual(resp.status_code, 400)


class InboxTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.alice, self.alice_headers, _ = self.signup("Alice")
        self.bob, self.bob_headers, _ = self.signup("Bob")
        self.carol, self.carol_headers, _ = self.signup("Carol")

    def react(self, headers, token_id, reaction_type):
        return self.client.post(
            f"/api/messages/{token_id}/reactions",
            json={"reaction_type": reaction_type},
            headers=headers,
        )

    def test_message_visible_only_to_its_parties(self):
        message = self.send_bottle(self.alice_headers, self.bob["id"])

        alice = self.inbox(self.alice_headers)
        bob = self.inbox(self.bob_headers)
        carol = self.inbox(self.carol_headers)

        self.assertEqual([m["token_id"] for m in alice["sent"]], [message["token_id"]])
        self.assertEqual(alice["received"], [])
        self.assertEqual([m["token_id"] for m in bob["received"]], [message["token_id"]])
        self.assertEqual(bob["sent"], [])
        self.assertEqual(carol, {"received": [], "sent": []})

    def test_newest_first(self):
        first = self.send_bottle(self.alice_headers, self.bob["id"], content="first")
        second = self.send_bottle(self.alice_headers, self.bob["id"], content="second")

        received = self.inbox(self.bob_headers)["received"]
        self.assertEqual([m["token_id"] for m in received], [second["token_id"], first["token_id"]])

    def test_reactions_aggregate_per_message(self):
        first = self.send_bottle(self.alice_headers, self.bob["id"], content="first")
        second = self.send_bottle(self.alice_headers, self.bob["id"], content="second")

        self.assertEqual(self.react(self.bob_headers, first["token_id"], "like").status_code, 201)
        self.client.post(
            f"/api/threads/{first['token_id']}/replies", json={"content": "thanks"}, headers=self.bob_headers
        )
        self.assertEqual(self.react(self.bob_headers, first["token_id"], "funny").status_code, 201)
        self.assertEqual(self.react(self.alice_headers, first["token_id"], "like").status_code, 201)

        sent = {m["token_id"]: m for m in self.inbox(self.alice_headers)["sent"]}
        self.assertEqual(sent[first["token_id"]]["reaction_counts"], {"like": 2, "funny": 1})
        self.assertEqual(sent[first["token_id"]]["reply_count"], 1)
        self.assertEqual(sent[second["token_id"]]["reaction_counts"], {})
        self.assertEqual(sent[second["token_id"]]["reply_count"], 0)
        self.assertEqual(sent[first["token_id"]]["reacted_types"], ["like"])

        received = {m["token_id"]: m for m in self.inbox(self.bob_headers)["received"]}
        self.assertEqual(received[first["token_id"]]["reacted_types"], ["funny", "like"])
        self.assertEqual(
            sorted(r["reaction_type"] for r in received[first["token_id"]]["reactions"]),
            ["funny", "like", "like"],
        )

    def test_duplicate_reaction_conflicts(self):
        message = self.send_bottle(self.alice_headers, self.bob["id"])

        self.assertEqual(self.react(self.bob_headers, message["token_id"], "touching").status_code, 201)
        self.assertEqual(self.react(self.bob_headers, message["token_id"], "touching").status_code, 409)

        sent = self.inbox(self.alice_headers)["sent"][0]
        self.assertEqual(sent["reaction_counts"], {"touching": 1})

    def test_unknown_reaction_type(self):
        message = self.send_bottle(self.alice_headers, self.bob["id"])
        self.assertEqual(self.react(self.bob_headers, message["token_id"], "angry").status_code, 422)

    def test_outsider_cannot_react(self):
        message = self.send_bottle(self.alice_headers, self.bob["id"])
        self.assertEqual(self.react(self.carol_headers, message["token_id"], "like").status_code, 404)

    def test_reaction_response_hides_reactor(self):
        message = self.send_bottle(self.alice_headers, self.bob["id"])
        body = self.react(self.bob_headers, message["token_id"], "intriguing").json()
        self.assertEqual(body["reaction_type"], "intriguing")
        self.assertEqual(body["message_token"], message["token_id"])
        self.assertNotIn("reactor_id", body)

    def test_either_party_deletes(self):
        kept = self.send_bottle(self.alice_headers, self.bob["id"], content="kept")
        by_sender = self.send_bottle(self.alice_headers, self.bob["id"], content="by sender")
        by_recipient = self.send_bottle(self.alice_headers, self.bob["id"], content="by recipient")

        resp = self.client.delete(f"/api/messages/{by_sender['id']}", headers=self.alice_headers)
        self.assertEqual(resp.status_code, 200)
        resp = self.client.delete(f"/api/messages/{by_recipient['id']}", headers=self.bob_headers)
        self.assertEqual(resp.status_code, 200)

        self.assertEqual([m["token_id"] for m in self.inbox(self.alice_headers)["sent"]], [kept["token_id"]])
        self.assertEqual([m["token_id"] for m in self.inbox(self.bob_headers)["received"]], [kept["token_id"]])

    def test_outsider_cannot_delete(self):
        message = self.send_bottle(self.alice_headers, self.bob["id"])
        resp = self.client.delete(f"/api/messages/{message['id']}", headers=self.carol_headers)
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(len(self.inbox(self.bob_headers)["received"]), 1)

    def test_delete_leaves_orphans_harmless(self):
        message = self.send_bottle(self.alice_headers, self.bob["id"])
        token_id = message["token_id"]
        self.react(self.bob_headers, token_id, "like")
        self.client.post(f"/api/threads/{token_id}/replies", json={"content": "hey"}, headers=self.bob_headers)

        self.client.delete(f"/api/messages/{message['id']}", headers=self.bob_headers)

        self.assertEqual(self.inbox(self.alice_headers), {"received": [], "sent": []})
        self.assertEqual(self.inbox(self.bob_headers), {"received": [], "sent": []})
        self.assertEqual(self.react(self.bob_headers, token_id, "funny").status_code, 404)
        self.assertEqual(self.client.get(f"/api/threads/{token_id}", headers=self.alice_headers).status_code, 404)


if __name__ == "__main__":
    unittest.main()
