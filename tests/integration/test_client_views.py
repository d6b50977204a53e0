"""
Integration tests for the client-side controllers.

The controllers talk to the real application in-process through
ProcedureServiceClient, so these tests cover the whole path from view
state to database.
"""

import asyncio
from datetime import date

import pytest

from procedure_tracker.client.api_client import ProcedureServiceClient
from procedure_tracker.client.card import ProcedureCard
from procedure_tracker.client.dashboard import (
    EMPTY_ADMIN_MESSAGE,
    EMPTY_SEARCH_MESSAGE,
    EMPTY_STAFF_MESSAGE,
    ProcedureListController,
)
from procedure_tracker.client.editor import EditorMode
from procedure_tracker.client.session import (
    SIGN_UP_NOTICE,
    AuthForm,
    AuthMode,
    SessionContext,
    SessionGate,
    View,
)
from procedure_tracker.models.procedure import ProcedureStatus

from tests.factories import DEFAULT_PASSWORD, ProcedureFactory, ProfileFactory


async def signed_in(service_client: ProcedureServiceClient, email: str) -> SessionContext:
    context = SessionContext(service_client)
    await context.initialize()
    await context.sign_in(email, DEFAULT_PASSWORD)
    return context


class TestSessionGate:

    @pytest.mark.asyncio
    async def test_view_follows_session(self, service_client, db_session, clean_db):
        await ProfileFactory.create_staff(db_session, email="gate@example.com")
        await db_session.commit()

        context = SessionContext(service_client)
        changes = []
        gate = SessionGate(context, on_change=changes.append)
        assert gate.view == View.LOADING

        await context.initialize()
        assert gate.view == View.AUTH

        await context.sign_in("gate@example.com", DEFAULT_PASSWORD)
        assert gate.view == View.DASHBOARD
        assert context.profile.email == "gate@example.com"

        await context.sign_out()
        assert gate.view == View.AUTH
        assert service_client.access_token is None
        assert changes == [View.AUTH, View.DASHBOARD, View.AUTH]

        gate.close()
        context.close()

    @pytest.mark.asyncio
    async def test_stored_token_restores_session(self, service_client, db_session, clean_db):
        await ProfileFactory.create_admin(db_session, email="stored@example.com")
        await db_session.commit()

        session = await service_client.sign_in("stored@example.com", DEFAULT_PASSWORD)

        context = SessionContext(service_client)
        await context.initialize(access_token=session.access_token)

        assert context.resolved
        assert context.profile.is_admin

    @pytest.mark.asyncio
    async def test_rejected_token_starts_signed_out(self, service_client, db_session, clean_db):
        context = SessionContext(service_client)
        gate = SessionGate(context)

        await context.initialize(access_token="not-a-token")

        assert context.session is None
        assert gate.view == View.AUTH

    @pytest.mark.asyncio
    async def test_expired_access_token_falls_back_to_refresh(self, service_client, db_session, clean_db):
        await ProfileFactory.create_staff(db_session, email="returning@example.com")
        await db_session.commit()

        stored = await service_client.sign_in("returning@example.com", DEFAULT_PASSWORD)
        service_client.access_token = None

        context = SessionContext(service_client)
        gate = SessionGate(context)
        await context.initialize(access_token="not-a-token", refresh_token=stored.refresh_token)

        assert gate.view == View.DASHBOARD
        assert context.profile.email == "returning@example.com"
        assert context.session.refresh_token == stored.refresh_token
        assert service_client.access_token == context.session.access_token
        assert service_client.access_token != "not-a-token"

    @pytest.mark.asyncio
    async def test_rejected_refresh_token_starts_signed_out(self, service_client, db_session, clean_db):
        context = SessionContext(service_client)
        gate = SessionGate(context)

        await context.initialize(refresh_token="not-a-refresh-token")

        assert context.resolved
        assert context.session is None
        assert service_client.access_token is None
        assert gate.view == View.AUTH

    @pytest.mark.asyncio
    async def test_unsubscribed_listener_not_called(self, service_client, db_session, clean_db):
        await ProfileFactory.create_staff(db_session, email="quiet@example.com")
        await db_session.commit()

        context = SessionContext(service_client)
        seen = []
        unsubscribe = context.subscribe(seen.append)
        await context.initialize()
        unsubscribe()
        await context.sign_in("quiet@example.com", DEFAULT_PASSWORD)

        assert seen == [None]


class TestAuthForm:

    @pytest.mark.asyncio
    async def test_sign_up_then_sign_in(self, service_client, db_session, clean_db):
        context = SessionContext(service_client)
        await context.initialize()
        form = AuthForm(context)

        form.toggle_mode()
        assert form.mode == AuthMode.SIGN_UP
        form.email = "fresh@example.com"
        form.password = "secret1"
        form.full_name = "Fresh Hire"

        assert await form.submit() is True
        assert form.notice == SIGN_UP_NOTICE
        assert form.mode == AuthMode.SIGN_IN
        assert form.password == ""
        # Signing up does not sign in
        assert context.session is None

        form.password = "secret1"
        assert await form.submit() is True
        assert context.profile.full_name == "Fresh Hire"
        assert context.profile.role.value == "staff"

    @pytest.mark.asyncio
    async def test_short_password_rejected_before_request(self, service_client, db_session, clean_db):
        context = SessionContext(service_client)
        form = AuthForm(context)
        form.toggle_mode()
        form.email = "short@example.com"
        form.password = "12345"
        form.full_name = "Short"

        assert await form.submit() is False
        assert "at least 6" in form.error

    @pytest.mark.asyncio
    async def test_wrong_password_shows_service_message(self, service_client, db_session, clean_db):
        await ProfileFactory.create_staff(db_session, email="typo@example.com")
        await db_session.commit()

        context = SessionContext(service_client)
        form = AuthForm(context)
        form.email = "typo@example.com"
        form.password = "wrong-password"

        assert await form.submit() is False
        assert form.error == "Invalid login credentials"
        assert context.session is None

    @pytest.mark.asyncio
    async def test_duplicate_email_shows_service_message(self, service_client, db_session, clean_db):
        await ProfileFactory.create_staff(db_session, email="taken@example.com")
        await db_session.commit()

        form = AuthForm(SessionContext(service_client))
        form.toggle_mode()
        form.email = "taken@example.com"
        form.password = "secret1"
        form.full_name = "Taken"

        assert await form.submit() is False
        assert form.error == "Email already registered"
        assert form.mode == AuthMode.SIGN_UP


class TestProcedureListController:

    @pytest.mark.asyncio
    async def test_empty_messages_by_role_and_search(self, service_client, db_session, clean_db):
        await ProfileFactory.create_admin(db_session, email="admin@example.com")
        await ProfileFactory.create_staff(db_session, email="staff@example.com")
        await db_session.commit()

        context = await signed_in(service_client, "admin@example.com")
        admin_view = ProcedureListController(service_client, context.profile)
        await admin_view.load()
        assert admin_view.can_create
        assert admin_view.empty_message == EMPTY_ADMIN_MESSAGE

        admin_view.search_query = "eft"
        assert admin_view.empty_message == EMPTY_SEARCH_MESSAGE

        await context.sign_out()
        await context.sign_in("staff@example.com", DEFAULT_PASSWORD)
        staff_view = ProcedureListController(service_client, context.profile)
        await staff_view.load()
        assert not staff_view.can_create
        assert staff_view.empty_message == EMPTY_STAFF_MESSAGE

    @pytest.mark.asyncio
    async def test_view_state_changes_recompute(self, service_client, db_session, clean_db):
        admin = await ProfileFactory.create_admin(db_session, email="admin@example.com")
        await ProcedureFactory.create(
            db_session, created_by=admin.id, title="Old EFT Process",
            effective_date=date(2023, 6, 1), status=ProcedureStatus.REPLACED,
        )
        await ProcedureFactory.create(
            db_session, created_by=admin.id, title="New EFT Process",
            effective_date=date(2024, 1, 15), source="Teams",
        )
        await ProcedureFactory.create(
            db_session, created_by=admin.id, title="Expense receipts",
            effective_date=date(2024, 2, 1), source="Email",
        )
        await db_session.commit()

        context = await signed_in(service_client, "admin@example.com")
        view = ProcedureListController(service_client, context.profile)
        await view.load()

        assert len(view.procedures) == 3
        assert [p.title for p in view.visible] == ["Expense receipts", "New EFT Process"]

        view.sort_key = "title"
        assert [p.title for p in view.visible] == ["Expense receipts", "New EFT Process"]

        view.status_filter = "all"
        view.search_query = "eft"
        assert [p.title for p in view.visible] == ["New EFT Process", "Old EFT Process"]

        view.status_filter = "replaced"
        assert [p.title for p in view.visible] == ["Old EFT Process"]

        # The authoritative list is untouched by view changes
        assert len(view.procedures) == 3

    @pytest.mark.asyncio
    async def test_load_failure_is_surfaced(self, service_client, db_session, clean_db):
        await ProfileFactory.create_staff(db_session, email="staff@example.com")
        await db_session.commit()

        context = await signed_in(service_client, "staff@example.com")
        view = ProcedureListController(service_client, context.profile)
        service_client.access_token = None

        await view.load()

        assert view.procedures == []
        assert view.load_error
        assert view.loading is False
        # No "nothing here yet" message while the list could not be fetched
        assert view.empty_message is None


class TestProcedureEditor:

    @pytest.mark.asyncio
    async def test_admin_creates_procedure(self, service_client, db_session, clean_db):
        await ProfileFactory.create_admin(db_session, email="admin@example.com")
        await db_session.commit()

        context = await signed_in(service_client, "admin@example.com")
        view = ProcedureListController(service_client, context.profile)
        await view.load()

        view.open_create()
        editor = view.editor
        assert editor.is_open
        assert editor.mode == EditorMode.CREATE
        assert not editor.status_editable

        editor.form.title = "Visitor sign-in"
        editor.form.source = "Teams"
        editor.form.effective_date = date(2024, 5, 1)
        assert await editor.submit() is True

        assert not editor.is_open
        assert [p.title for p in view.visible] == ["Visitor sign-in"]
        created = view.visible[0]
        assert created.status == ProcedureStatus.ACTIVE
        assert created.created_by == context.profile.id

    @pytest.mark.asyncio
    async def test_admin_edits_status(self, service_client, db_session, clean_db):
        admin = await ProfileFactory.create_admin(db_session, email="admin@example.com")
        await ProcedureFactory.create(db_session, created_by=admin.id, title="Old EFT Process")
        await db_session.commit()

        context = await signed_in(service_client, "admin@example.com")
        view = ProcedureListController(service_client, context.profile)
        await view.load()

        card = view.cards()[0]
        card.edit()
        editor = view.editor
        assert editor.mode == EditorMode.EDIT
        assert editor.form.title == "Old EFT Process"

        editor.form.status = ProcedureStatus.REPLACED
        assert await editor.submit() is True

        assert view.visible == []
        view.status_filter = "replaced"
        assert [p.title for p in view.visible] == ["Old EFT Process"]

    @pytest.mark.asyncio
    async def test_validation_keeps_editor_open(self, service_client, db_session, clean_db):
        await ProfileFactory.create_admin(db_session, email="admin@example.com")
        await db_session.commit()

        context = await signed_in(service_client, "admin@example.com")
        view = ProcedureListController(service_client, context.profile)
        view.open_create()

        assert await view.editor.submit() is False
        assert view.editor.is_open
        assert view.editor.validation.for_field("title") == ["Title is required"]

    @pytest.mark.asyncio
    async def test_service_error_keeps_editor_open(self, service_client, db_session, clean_db):
        await ProfileFactory.create_staff(db_session, email="staff@example.com")
        await db_session.commit()

        context = await signed_in(service_client, "staff@example.com")
        view = ProcedureListController(service_client, context.profile)

        view.open_create()
        assert not view.editor.is_open

        # Staff cannot reach the create action, but the service is the one enforcing it
        view.editor.open(today=date(2024, 1, 1))
        view.editor.form.title = "Sneaky"
        assert await view.editor.submit() is False
        assert view.editor.is_open
        assert view.editor.error == "Admin privileges required"
        assert view.editor.submitting is False


class TestProcedureCard:

    @pytest.mark.asyncio
    async def test_acknowledge_once(self, service_client, db_session, clean_db):
        admin = await ProfileFactory.create_admin(
            db_session, email="admin@example.com", full_name="Avery Admin"
        )
        await ProfileFactory.create_staff(db_session, email="staff@example.com")
        await ProcedureFactory.create(db_session, created_by=admin.id, title="New EFT Process")
        await db_session.commit()

        context = await signed_in(service_client, "staff@example.com")
        view = ProcedureListController(service_client, context.profile)
        await view.load()

        card = view.cards()[0]
        await card.load()
        assert card.creator.full_name == "Avery Admin"
        assert (card.acknowledged_count, card.total_profiles, card.percentage) == (0, 2, 0)
        assert card.can_acknowledge
        assert not card.can_edit

        assert await card.acknowledge() is True
        assert card.has_acknowledged
        assert (card.acknowledged_count, card.percentage) == (1, 50)
        assert not card.can_acknowledge

        assert await card.acknowledge() is False
        await card.load()
        assert card.acknowledged_count == 1

    @pytest.mark.asyncio
    async def test_inactive_procedure_cannot_be_acknowledged(self, service_client, db_session, clean_db):
        await ProfileFactory.create_staff(db_session, email="staff@example.com")
        await ProcedureFactory.create(db_session, title="Archive policy", status=ProcedureStatus.ARCHIVED)
        await db_session.commit()

        context = await signed_in(service_client, "staff@example.com")
        procedures = await service_client.list_procedures()

        card = ProcedureCard(service_client, procedures[0], context.profile)
        await card.load()
        assert card.creator is None
        assert not card.can_acknowledge
        assert await card.acknowledge() is False

    @pytest.mark.asyncio
    async def test_concurrent_acknowledge_sends_one_request(self, service_client, db_session, clean_db):
        await ProfileFactory.create_staff(db_session, email="staff@example.com")
        await ProcedureFactory.create(db_session, title="Visitor sign-in")
        await db_session.commit()

        context = await signed_in(service_client, "staff@example.com")
        procedures = await service_client.list_procedures()
        card = ProcedureCard(service_client, procedures[0], context.profile)
        await card.load()

        results = await asyncio.gather(card.acknowledge(), card.acknowledge())

        assert results == [True, False]
        await card.load()
        assert card.has_acknowledged
        assert card.acknowledged_count == 1

    @pytest.mark.asyncio
    async def test_successful_reload_clears_error(self, service_client, db_session, clean_db):
        await ProfileFactory.create_staff(db_session, email="staff@example.com")
        await ProcedureFactory.create(db_session, title="Visitor sign-in")
        await db_session.commit()

        context = await signed_in(service_client, "staff@example.com")
        procedures = await service_client.list_procedures()
        card = ProcedureCard(service_client, procedures[0], context.profile)

        service_client.access_token = None
        await card.load()
        assert card.error

        service_client.access_token = context.session.access_token
        await card.load()
        assert card.error == ""
        assert card.total_profiles == 1
