"""
HTTP surface end to end through the ASGI app, with the database and payment gateway overridden.
"""
import httpx

from api.deps import get_gateway
from database import get_db
from main import app
from tests.factories import DatabaseTestCase, FakeGateway, make_user

PACKAGE = {
    "name": "ESA Letter - Housing",
    "price": "0",
    "formFields": [{"name": "fullName", "type": "text", "required": True}],
}


class ApiTestCase(DatabaseTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.gateway = FakeGateway()

        async def override_get_db():
            async with self.sessionmaker() as session:
                try:
                    yield session
                    await session.commit()
                except Exception:
                    await session.rollback()
                    raise

        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_gateway] = lambda: self.gateway
        self.client = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")

        self.owner = await make_user(self.session, "owner")
        self.agent = await make_user(self.session, "agent")
        self.other_agent = await make_user(self.session, "agent")
        self.doctor = await make_user(self.session, "doctor")
        await self.session.commit()

    async def asyncTearDown(self):
        await self.client.aclose()
        app.dependency_overrides.clear()
        await super().asyncTearDown()

    def as_user(self, user_id):
        return {"X-User-Id": user_id}

    async def register(self, email="jane@example.com"):
        r = await self.client.post(
            "/api/users/register",
            json={"email": email, "firstName": "Jane", "lastName": "Doe", "phone": "555-0100"},
        )
        self.assertEqual(r.status_code, 201, r.text)
        return r.json()["id"]

    async def create_package(self, **overrides):
        r = await self.client.post(
            "/api/admin/packages", json={**PACKAGE, **overrides}, headers=self.as_user(self.owner.id)
        )
        self.assertEqual(r.status_code, 201, r.text)
        return r.json()["id"]

    async def submit(self, applicant_id, package_id, **extra):
        return await self.client.post(
            "/api/applications",
            json={"packageId": package_id, "formData": {"fullName": "Jane Doe", "petName": "Biscuit"}, **extra},
            headers=self.as_user(applicant_id),
        )


class TestApplicationsApi(ApiTestCase):
    async def test_health(self):
        r = await self.client.get("/health")
        self.assertEqual(r.json(), {"status": "ok"})

    async def test_requires_identity(self):
        r = await self.client.get("/api/applications")
        self.assertEqual(r.status_code, 401)
        self.assertEqual(r.json()["error"], "NotAuthenticatedError")

    async def test_missing_fields_report(self):
        applicant = await self.register()
        package_id = await self.create_package()
        r = await self.client.post(
            "/api/applications",
            json={"packageId": package_id, "formData": {}},
            headers=self.as_user(applicant),
        )
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.json()["missing"], ["fullName"])

    async def test_agent_path_to_completed(self):
        applicant = await self.register()
        package_id = await self.create_package()
        r = await self.submit(applicant, package_id)
        self.assertEqual(r.status_code, 201, r.text)
        app_id = r.json()["id"]
        self.assertEqual(r.json()["status"], "pending")

        r = await self.client.post(
            f"/api/admin/applications/{app_id}/reviewer-decision",
            json={"approved": True, "notes": "ok"},
            headers=self.as_user(self.owner.id),
        )
        self.assertEqual(r.json()["status"], "level3_work")

        r = await self.client.get("/api/agent/work-queue", headers=self.as_user(self.agent.id))
        self.assertEqual([a["id"] for a in r.json()], [app_id])

        r = await self.client.post(f"/api/agent/work-queue/{app_id}/claim", headers=self.as_user(self.agent.id))
        self.assertEqual(r.json()["assignedAgentId"], self.agent.id)
        r = await self.client.post(f"/api/agent/work-queue/{app_id}/claim", headers=self.as_user(self.other_agent.id))
        self.assertEqual(r.status_code, 409)
        self.assertEqual(r.json()["error"], "AlreadyClaimedError")

        r = await self.client.post(
            f"/api/agent/work-queue/{app_id}/complete",
            json={"notes": "letter drafted"},
            headers=self.as_user(self.agent.id),
        )
        self.assertEqual(r.json()["status"], "level4_verification")

        r = await self.client.get("/api/agent/work-queue/stats", headers=self.as_user(self.agent.id))
        self.assertEqual(r.json(), {"waiting": 0, "inProgress": 0, "completedTotal": 1})

        r = await self.client.post(
            f"/api/admin/verification-queue/{app_id}/verify",
            json={"approved": True},
            headers=self.as_user(self.owner.id),
        )
        self.assertEqual(r.json()["status"], "completed")
        self.assertEqual(r.json()["formData"], {"fullName": "Jane Doe", "petName": "Biscuit"})

        r = await self.client.get(f"/api/applications/{app_id}/events", headers=self.as_user(applicant))
        self.assertEqual(r.json()[-1]["toStatus"], "completed")

    async def test_failed_transition_is_rolled_back(self):
        """A 409 leaves the stored application exactly as it was."""
        applicant = await self.register()
        app_id = (await self.submit(applicant, await self.create_package())).json()["id"]
        r = await self.client.post(f"/api/agent/work-queue/{app_id}/claim", headers=self.as_user(self.agent.id))
        self.assertEqual(r.status_code, 409)
        self.assertEqual(r.json()["currentStatus"], "pending")

        r = await self.client.get(f"/api/applications/{app_id}", headers=self.as_user(applicant))
        self.assertEqual(r.json()["status"], "pending")
        self.assertIsNone(r.json()["assignedAgentId"])

    async def test_applicant_cannot_see_others(self):
        first = await self.register("a@example.com")
        second = await self.register("b@example.com")
        app_id = (await self.submit(first, await self.create_package())).json()["id"]
        r = await self.client.get(f"/api/applications/{app_id}", headers=self.as_user(second))
        self.assertEqual(r.status_code, 403)
        r = await self.client.get("/api/agent/work-queue", headers=self.as_user(second))
        self.assertEqual(r.status_code, 403)

    async def test_priced_package_checkout(self):
        applicant = await self.register()
        package_id = await self.create_package(price="129.00")
        r = await self.submit(applicant, package_id)
        self.assertEqual(r.json()["status"], "awaiting_payment")
        app_id = r.json()["id"]

        r = await self.client.post(
            f"/api/applications/{app_id}/pay", json={"paymentToken": "opaque"}, headers=self.as_user(applicant)
        )
        self.assertEqual(r.status_code, 200, r.text)
        self.assertEqual(r.json()["status"], "level3_work")
        self.assertEqual(r.json()["paymentStatus"], "paid")
        self.assertEqual(self.gateway.charges[0]["amount_cents"], 12900)

    async def test_declined_card(self):
        self.gateway.approve = False
        applicant = await self.register()
        package_id = await self.create_package(price="129.00")
        r = await self.submit(applicant, package_id, paymentToken="opaque")
        self.assertEqual(r.status_code, 402)
        r = await self.client.get("/api/applications", headers=self.as_user(applicant))
        self.assertEqual(r.json(), [])


class TestDoctorReviewApi(ApiTestCase):
    async def test_review_link_flow(self):
        applicant = await self.register()
        app_id = (await self.submit(applicant, await self.create_package())).json()["id"]

        r = await self.client.post(
            f"/api/admin/applications/{app_id}/send-to-doctor", headers=self.as_user(self.owner.id)
        )
        self.assertEqual(r.status_code, 200, r.text)
        body = r.json()
        self.assertEqual(body["application"]["status"], "doctor_review")
        self.assertEqual(body["doctor"]["id"], self.doctor.id)
        token = body["reviewUrl"].rsplit("/", 1)[-1]

        r = await self.client.get(f"/api/review/{token}")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json()["application"]["formData"]["fullName"], "Jane Doe")
        self.assertEqual(r.json()["patient"]["firstName"], "Jane")

        r = await self.client.post(f"/api/review/{token}/decision", json={"decision": "approved"})
        self.assertEqual(r.json(), {"status": "completed", "applicationId": app_id})

        r = await self.client.post(f"/api/review/{token}/decision", json={"decision": "denied"})
        self.assertEqual(r.status_code, 409)
        self.assertEqual(r.json()["error"], "TokenConsumedError")

    async def test_unknown_token(self):
        r = await self.client.get("/api/review/not-a-token")
        self.assertEqual(r.status_code, 404)


class TestCallQueueApi(ApiTestCase):
    async def test_join_and_status(self):
        applicant = await self.register()
        r = await self.client.post("/api/queue/join", json={}, headers=self.as_user(applicant))
        self.assertEqual(r.status_code, 201, r.text)
        self.assertEqual(r.json()["position"], 1)
        entry_id = r.json()["entry"]["id"]

        r = await self.client.post("/api/queue/join", json={}, headers=self.as_user(applicant))
        self.assertEqual(r.status_code, 409)

        r = await self.client.get("/api/queue/my-status", headers=self.as_user(applicant))
        self.assertTrue(r.json()["inQueue"])
        self.assertEqual(r.json()["estimatedWaitMinutes"], 5)

        r = await self.client.post(f"/api/queue/{entry_id}/claim", headers=self.as_user(self.agent.id))
        self.assertEqual(r.json()["status"], "claimed")
        r = await self.client.post(
            f"/api/queue/{entry_id}/end-call", json={"outcome": "follow_up"}, headers=self.as_user(self.agent.id)
        )
        self.assertEqual(r.json()["entry"]["status"], "done")

        r = await self.client.get("/api/queue/my-status", headers=self.as_user(applicant))
        self.assertEqual(r.json(), {"inQueue": False})


class TestSiteApi(ApiTestCase):
    async def test_config_defaults_and_owner_update(self):
        r = await self.client.get("/api/config")
        self.assertEqual(r.json()["roleNames"]["reviewer"], "Reviewer")

        r = await self.client.put(
            "/api/owner/config",
            json={"siteName": "Paws Letters", "roleNames": {"reviewer": "Counselor"}},
            headers=self.as_user(self.owner.id),
        )
        self.assertEqual(r.status_code, 200, r.text)
        self.assertEqual(r.json()["siteName"], "Paws Letters")
        self.assertEqual(r.json()["roleNames"]["reviewer"], "Counselor")
        self.assertEqual(r.json()["roleNames"]["agent"], "Agent")

        r = await self.client.put("/api/owner/config", json={"siteName": "x"}, headers=self.as_user(self.agent.id))
        self.assertEqual(r.status_code, 403)

    async def test_public_packages_hide_inactive(self):
        active = await self.create_package()
        hidden = await self.create_package(name="Old", isActive=False)
        r = await self.client.get("/api/packages")
        ids = [p["id"] for p in r.json()]
        self.assertIn(active, ids)
        self.assertNotIn(hidden, ids)

    async def test_duplicate_registration(self):
        await self.register()
        r = await self.client.post(
            "/api/users/register", json={"email": "JANE@example.com", "firstName": "J", "lastName": "D"}
        )
        self.assertEqual(r.status_code, 400)


class TestStaffRecordsApi(ApiTestCase):
    async def test_payments_list_for_admins(self):
        applicant = await self.register()
        package_id = await self.create_package(price="129.00")
        r = await self.submit(applicant, package_id, paymentToken="opaque")
        self.assertEqual(r.json()["status"], "pending")
        app_id = r.json()["id"]

        r = await self.client.get("/api/admin/payments", headers=self.as_user(self.owner.id))
        self.assertEqual(r.status_code, 200, r.text)
        payments = r.json()
        self.assertEqual(len(payments), 1)
        self.assertEqual(payments[0]["applicationId"], app_id)
        self.assertEqual(payments[0]["amount"], "129.00")
        self.assertEqual(payments[0]["method"], "card")
        self.assertEqual(payments[0]["transactionId"], "txn-1")

        r = await self.client.get("/api/admin/payments", headers=self.as_user(self.agent.id))
        self.assertEqual(r.status_code, 403)

    async def test_user_notes(self):
        """Staff keep notes on customer accounts; content is trimmed and must not be blank."""
        applicant = await self.register()
        r = await self.client.post(
            f"/api/users/{applicant}/notes", json={"content": "  Called back, left voicemail  "},
            headers=self.as_user(self.agent.id),
        )
        self.assertEqual(r.status_code, 201, r.text)
        self.assertEqual(r.json()["content"], "Called back, left voicemail")
        self.assertEqual(r.json()["authorId"], self.agent.id)

        r = await self.client.post(
            f"/api/users/{applicant}/notes", json={"content": "   "}, headers=self.as_user(self.agent.id)
        )
        self.assertEqual(r.status_code, 400)

        r = await self.client.post(
            f"/api/users/{applicant}/notes", json={"content": "hi"}, headers=self.as_user(applicant)
        )
        self.assertEqual(r.status_code, 403)

        r = await self.client.get(f"/api/users/{applicant}/notes", headers=self.as_user(self.owner.id))
        self.assertEqual([n["content"] for n in r.json()], ["Called back, left voicemail"])

        r = await self.client.get("/api/users/nobody/notes", headers=self.as_user(self.agent.id))
        self.assertEqual(r.status_code, 404)
