import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select

from cissp_mastery.main import create_app
from cissp_mastery.models import AuditEvent, Subscription, User, UserStats
from tests.factories import build_class_tree


@pytest.mark.integration
class TestIdentityEndpoints:
    """Integration tests for identity-dependent endpoints"""

    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    async def test_is_admin_true(self, client, admin_user, auth_headers):
        response = await client.get("/api/v1/user/is-admin", headers=auth_headers(admin_user.auth_user_id))
        assert response.json() == {"isAdmin": True}

    async def test_is_admin_false_for_user(self, client, regular_user, auth_headers):
        response = await client.get("/api/v1/user/is-admin", headers=auth_headers(regular_user.auth_user_id))
        assert response.json() == {"isAdmin": False}

    async def test_is_admin_false_without_token(self, client):
        response = await client.get("/api/v1/user/is-admin")
        assert response.status_code == 200
        assert response.json() == {"isAdmin": False}

    async def test_subscription_status_requires_auth(self, client):
        response = await client.get("/api/v1/subscription/status")
        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}

    async def test_expired_token_is_unauthenticated(self, client, make_token):
        from datetime import timedelta

        token = make_token("user-9", expires_in=timedelta(seconds=-30))
        response = await client.get("/api/v1/stats/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    async def test_first_request_provisions_user(self, client, test_session, auth_headers):
        response = await client.get(
            "/api/v1/subscription/status",
            headers=auth_headers("new-user", first_name="Grace", last_name="Hopper"),
        )

        assert response.status_code == 200
        assert response.json() == {"hasPaidAccess": False, "planType": "free", "status": "active"}

        user = await test_session.get(User, "new-user")
        assert user.name == "Grace Hopper"
        assert user.role == "user"
        stats = (await test_session.scalars(select(UserStats).where(UserStats.user_id == "new-user"))).one()
        assert stats.total_cards_studied == 0

    async def test_repeated_requests_provision_once(self, client, test_session, auth_headers):
        for _ in range(3):
            await client.get("/api/v1/stats/me", headers=auth_headers("repeat-user"))

        rows = list(await test_session.scalars(select(Subscription).where(Subscription.user_id == "repeat-user")))
        assert len(rows) == 1

    async def test_paid_status(self, client, paid_user, auth_headers):
        response = await client.get("/api/v1/subscription/status", headers=auth_headers(paid_user.auth_user_id))
        assert response.json() == {"hasPaidAccess": True, "planType": "pro_monthly", "status": "active"}


@pytest.mark.integration
class TestProgressEndpoints:
    """Integration tests for rating and progress endpoints"""

    async def test_rate_card(self, client, regular_user, class_tree, auth_headers):
        card = class_tree["flashcards"][0]
        response = await client.post(
            "/api/v1/progress/card",
            json={"flashcard_id": card.id, "confidence_level": 5, "study_time_seconds": 12},
            headers=auth_headers(regular_user.auth_user_id),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["mastery_status"] == "mastered"
        assert body["stats"]["total_cards_studied"] == 1
        assert body["stats"]["total_study_time"] == 12

        progress = await client.get(
            "/api/v1/progress/card",
            params={"flashcard_id": card.id},
            headers=auth_headers(regular_user.auth_user_id),
        )
        assert progress.json()["mastery_status"] == "mastered"
        assert progress.json()["times_seen"] == 1

    @pytest.mark.parametrize("confidence", [0, 6, True, "high"])
    async def test_rate_card_rejects_bad_confidence(self, client, regular_user, class_tree, auth_headers, confidence):
        response = await client.post(
            "/api/v1/progress/card",
            json={"flashcard_id": class_tree["flashcards"][0].id, "confidence_level": confidence},
            headers=auth_headers(regular_user.auth_user_id),
        )
        assert response.status_code == 400
        assert response.json()["error"].startswith("Validation error: confidence_level")

    async def test_invalid_input_is_audited(self, client, test_session, regular_user, class_tree, auth_headers):
        await client.post(
            "/api/v1/progress/card",
            json={"flashcard_id": class_tree["flashcards"][0].id, "confidence_level": 9},
            headers=auth_headers(regular_user.auth_user_id),
        )
        events = list(await test_session.scalars(select(AuditEvent)))
        assert [e.event_type for e in events] == ["security.input.invalid"]

    async def test_rate_unknown_card(self, client, regular_user, auth_headers):
        response = await client.post(
            "/api/v1/progress/card",
            json={"flashcard_id": "missing", "confidence_level": 3},
            headers=auth_headers(regular_user.auth_user_id),
        )
        assert response.status_code == 404
        assert response.json() == {"error": "Flashcard not found"}

    async def test_card_progress_before_rating(self, client, regular_user, class_tree, auth_headers):
        response = await client.get(
            "/api/v1/progress/card",
            params={"flashcard_id": class_tree["flashcards"][0].id},
            headers=auth_headers(regular_user.auth_user_id),
        )
        assert response.status_code == 200
        assert response.json() is None

    async def test_deck_progress_and_stats(self, client, regular_user, class_tree, auth_headers):
        headers = auth_headers(regular_user.auth_user_id)
        deck = class_tree["decks"][0]
        card = next(c for c in class_tree["flashcards"] if c.deck_id == deck.id)
        await client.post("/api/v1/progress/card", json={"flashcard_id": card.id, "confidence_level": 5}, headers=headers)

        deck_progress = (await client.get(f"/api/v1/progress/decks/{deck.id}", headers=headers)).json()
        stats = (await client.get("/api/v1/stats/me", headers=headers)).json()

        assert deck_progress["mastered"] == 1
        assert deck_progress["new"] == 2
        assert stats["total_cards_studied"] == 1
        assert stats["study_streak_days"] == 1


@pytest.mark.integration
class TestStudyContentEndpoints:
    """Integration tests for learner-facing content"""

    async def test_deck_flashcards_in_order(self, client, regular_user, class_tree, auth_headers):
        deck = class_tree["decks"][0]
        response = await client.get(f"/api/v1/decks/{deck.id}/flashcards", headers=auth_headers(regular_user.auth_user_id))

        assert response.status_code == 200
        assert [c["position_index"] for c in response.json()] == [0, 1, 2]

    async def test_premium_deck_requires_paid_access(self, client, test_session, admin_user, regular_user, paid_user, auth_headers):
        tree = await build_class_tree(test_session, admin_user.auth_user_id, decks=1, cards=2, questions=1, premium=True)
        deck = tree["decks"][0]

        denied = await client.get(f"/api/v1/decks/{deck.id}/flashcards", headers=auth_headers(regular_user.auth_user_id))
        allowed = await client.get(f"/api/v1/decks/{deck.id}/flashcards", headers=auth_headers(paid_user.auth_user_id))
        quiz_denied = await client.get(
            f"/api/v1/flashcards/{tree['flashcards'][0].id}/quiz", headers=auth_headers(regular_user.auth_user_id)
        )

        assert denied.status_code == 403
        assert denied.json() == {"error": "Premium subscription required"}
        assert allowed.status_code == 200
        assert len(allowed.json()) == 2
        assert quiz_denied.status_code == 403

    async def test_flashcard_quiz_listing(self, client, regular_user, class_tree, auth_headers):
        card = class_tree["flashcards"][0]
        response = await client.get(f"/api/v1/flashcards/{card.id}/quiz", headers=auth_headers(regular_user.auth_user_id))

        body = response.json()
        assert body["success"] is True
        assert len(body["questions"]) == 2
        assert body["questions"][0]["options"][0] == {"text": "Confidentiality", "is_correct": True}

    async def test_unknown_deck(self, client, regular_user, auth_headers):
        response = await client.get("/api/v1/decks/missing/flashcards", headers=auth_headers(regular_user.auth_user_id))
        assert response.status_code == 404

    async def test_quiz_hidden_under_unpublished_deck(self, client, test_session, regular_user, class_tree, auth_headers):
        deck = class_tree["decks"][0]
        card = next(c for c in class_tree["flashcards"] if c.deck_id == deck.id)
        deck.is_published = False
        await test_session.commit()

        response = await client.get(f"/api/v1/flashcards/{card.id}/quiz", headers=auth_headers(regular_user.auth_user_id))
        assert response.status_code == 404
        assert response.json() == {"error": "Flashcard not found"}

    async def test_unknown_deck_progress(self, client, regular_user, auth_headers):
        response = await client.get("/api/v1/progress/decks/missing", headers=auth_headers(regular_user.auth_user_id))
        assert response.status_code == 404
        assert response.json() == {"error": "Deck not found"}


@pytest.mark.integration
class TestRatingRateLimit:
    """Integration tests for the rating rate limit"""

    @pytest.fixture
    async def limited_client(self, test_settings, test_db):
        settings = test_settings.model_copy(update={"rating_rate_limit": "2/minute"})
        app = create_app(settings, test_db)
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac

    async def test_limit_comes_from_app_settings(
        self, limited_client, test_session, regular_user, class_tree, auth_headers
    ):
        payload = {"flashcard_id": class_tree["flashcards"][0].id, "confidence_level": 4}
        headers = auth_headers(regular_user.auth_user_id)

        statuses = [
            (await limited_client.post("/api/v1/progress/card", json=payload, headers=headers)).status_code
            for _ in range(3)
        ]

        assert statuses == [200, 200, 429]
        assert (await limited_client.get("/api/v1/stats/me", headers=headers)).json()["total_cards_studied"] == 2
        events = list(await test_session.scalars(select(AuditEvent)))
        assert [e.event_type for e in events] == ["security.rate_limit.exceeded"]

    async def test_apps_do_not_share_counters(self, limited_client, client, regular_user, class_tree, auth_headers):
        payload = {"flashcard_id": class_tree["flashcards"][0].id, "confidence_level": 4}
        headers = auth_headers(regular_user.auth_user_id)
        for _ in range(3):
            await limited_client.post("/api/v1/progress/card", json=payload, headers=headers)

        response = await client.post("/api/v1/progress/card", json=payload, headers=headers)
        assert response.status_code == 200
