import asyncio
from typing import Any

import pytest

from forum_directory.app import ForumApp, create_app
from forum_directory.config import Settings
from forum_directory.core.errors import CapacityExceeded, NotFound, NotInitialized
from forum_directory.core.models import Contact, Position, Role, RoleType


def run(coro: Any) -> Any:
    return asyncio.run(coro)


def add_contact(app: ForumApp, uid: str, name: str, roles: list[Role] | None = None) -> None:
    run(app.contacts.create_contact(Contact(name=name, roles=roles or []), contact_id=uid))


@pytest.fixture
def app() -> ForumApp:
    app = create_app(Settings())
    assert run(app.roles.initialize_user_role("U1", "head@example.com")) is True
    for uid in ("U1", "U2", "U3", "U4", "U5"):
        add_contact(app, uid, f"User {uid[1:]}")
    return app


def reps(app: ForumApp, school: str, track: str, year: int) -> list[str]:
    structure = run(app.hierarchy.get_organization_structure())
    return structure.coordinators[school].tracks[track].reps[year]


def test_initialize_user_role_only_once() -> None:
    app = create_app(Settings())
    assert run(app.roles.initialize_user_role("U1", "head@example.com")) is True
    assert run(app.roles.initialize_user_role("U9", "other@example.com")) is False
    assert run(app.hierarchy.get_organization_structure()).head_of_forum == "U1"


def test_coordinator_fills_a_rep_slot(app: ForumApp) -> None:
    run(app.roles.add_coordinator_role_to_user("U2", "cs"))
    assert run(app.roles.can_add_rep_to_position("U2", "cs", "cs-track-0", 1)) is True

    run(app.roles.add_rep_role_to_user("U3", "cs", "cs-track-0", 1))
    run(app.roles.add_rep_role_to_user("U4", "cs", "cs-track-0", 1))
    with pytest.raises(CapacityExceeded):
        run(app.roles.add_rep_role_to_user("U5", "cs", "cs-track-0", 1))

    result = run(app.hierarchy.get_coordinator_reps("U2"))
    assert [c.id for c in result.tracks["cs-track-0"].reps[1]] == ["U3", "U4"]
    assert run(app.contacts.get_contact("U5")).roles == []


def test_add_rep_role_round_trip_is_idempotent(app: ForumApp) -> None:
    for _ in range(2):
        run(app.roles.add_rep_role_to_user("U3", "cs", "cs-track-1", 2, True))

    contact = run(app.contacts.get_contact("U3"))
    assert len(contact.roles) == 1
    role = contact.roles[0]
    assert (role.type, role.school_id, role.track_id, role.year) == (
        RoleType.REP,
        "cs",
        "cs-track-1",
        2,
    )
    assert role.has_been_elected is True
    assert reps(app, "cs", "cs-track-1", 2) == ["U3"]


def test_add_rep_role_without_contact_still_seats_user(app: ForumApp, caplog) -> None:
    run(app.roles.add_rep_role_to_user("ghost", "law", "law-track-0", 1))
    assert reps(app, "law", "law-track-0", 1) == ["ghost"]
    assert "ghost" in caplog.text


def test_dashboard_types(app: ForumApp) -> None:
    run(app.roles.add_coordinator_role_to_user("U1", "law"))
    run(app.roles.add_coordinator_role_to_user("U2", "cs"))
    run(app.roles.add_rep_role_to_user("U3", "cs", "cs-track-0", 1))

    head = run(app.roles.get_user_dashboard_type("U1"))
    assert head.dashboard_type == "head"
    assert head.show_multiple_dashboards is True
    assert head.role_info.role is RoleType.HEAD_OF_ACADEMIC_FORUM

    coordinator = run(app.roles.get_user_dashboard_type("U2"))
    assert coordinator.dashboard_type == "coordinator"
    assert coordinator.show_multiple_dashboards is False

    rep = run(app.roles.get_user_dashboard_type("U3"))
    assert rep.dashboard_type == "rep"
    assert rep.role_info == Position(
        role=RoleType.REP, school_id="cs", track_id="cs-track-0", year=1
    )

    public = run(app.roles.get_user_dashboard_type("U5"))
    assert public.dashboard_type == "public"
    assert public.role_info is None
    assert public.all_roles == []


def test_get_all_user_roles_in_scan_order(app: ForumApp) -> None:
    run(app.roles.add_coordinator_role_to_user("U1", "law"))
    run(app.roles.add_rep_role_to_user("U1", "cs", "cs-track-1", 2))

    roles = run(app.roles.get_all_user_roles("U1"))
    assert roles == [
        Position(role=RoleType.HEAD_OF_ACADEMIC_FORUM),
        Position(role=RoleType.REP, school_id="cs", track_id="cs-track-1", year=2),
        Position(role=RoleType.COORDINATOR, school_id="law"),
    ]
    # the single-role lookup only reports the first one
    assert run(app.hierarchy.get_user_role("U1")) == roles[0]


def test_authorization_checks(app: ForumApp) -> None:
    run(app.roles.add_coordinator_role_to_user("U2", "cs"))
    run(app.roles.add_rep_role_to_user("U3", "cs", "cs-track-0", 1))

    assert run(app.roles.can_add_coordinator("U1")) is True
    assert run(app.roles.can_add_coordinator("U2")) is False
    assert run(app.roles.can_add_coordinator("nobody")) is False

    assert run(app.roles.can_add_rep_to_position("U1", "law", "law-track-2", 3)) is True
    assert run(app.roles.can_add_rep_to_position("U2", "law", "law-track-0", 1)) is False
    assert run(app.roles.can_add_rep_to_position("U3", "cs", "cs-track-0", 1)) is False


def test_authorized_positions(app: ForumApp) -> None:
    run(app.roles.add_coordinator_role_to_user("U2", "cs"))

    head = run(app.roles.get_authorized_positions("U1"))
    assert len(head.coordinator_positions) == len(app.catalog.schools)
    total_slots = sum(3 * len(app.catalog.tracks_for(s.id)) for s in app.catalog.schools)
    assert len(head.rep_positions) == total_slots

    coordinator = run(app.roles.get_authorized_positions("U2"))
    assert coordinator.coordinator_positions == []
    assert {p.school_id for p in coordinator.rep_positions} == {"cs"}
    assert len(coordinator.rep_positions) == 12

    assert run(app.roles.get_authorized_positions("U5")).rep_positions == []


def test_remove_rep_role_with_loose_match(app: ForumApp) -> None:
    run(app.roles.add_rep_role_to_user("U3", "cs", "cs-track-0", 1))
    run(app.roles.add_rep_role_to_user("U3", "cs", "cs-track-0", 2))

    # no year: every matching contact role goes, the hierarchy is untouched
    run(app.roles.remove_role_from_user("U3", RoleType.REP, "cs", "cs-track-0"))
    assert run(app.contacts.get_contact("U3")).roles == []
    assert reps(app, "cs", "cs-track-0", 1) == ["U3"]

    run(app.roles.remove_role_from_user("U3", RoleType.REP, "cs", "cs-track-0", 1))
    assert reps(app, "cs", "cs-track-0", 1) == []
    assert reps(app, "cs", "cs-track-0", 2) == ["U3"]


def test_remove_coordinator_clears_slot_regardless_of_holder(app: ForumApp) -> None:
    run(app.roles.add_coordinator_role_to_user("U2", "cs"))
    run(app.roles.remove_role_from_user("nobody", RoleType.COORDINATOR, "cs"))
    assert run(app.hierarchy.get_organization_structure()).coordinators["cs"].user_id == ""
    # the holder's contact keeps its now stale role
    assert run(app.contacts.get_contact("U2")).has_role(RoleType.COORDINATOR)


def test_register_rep_contact_records_coordinator(app: ForumApp) -> None:
    run(app.roles.add_coordinator_role_to_user("U2", "cs"))
    new = Contact(
        name="Maya",
        email="maya@example.com",
        roles=[Role(type=RoleType.REP, school_id="cs", track_id="cs-track-3", year=3)],
    )
    contact_id = run(app.roles.register_rep_contact("U2", new))

    stored = run(app.contacts.get_contact(contact_id))
    assert stored.roles[0].coordinator_in_charge == "U2"
    assert new.roles[0].coordinator_in_charge is None
    assert reps(app, "cs", "cs-track-3", 3) == [contact_id]


def test_register_rep_contact_rolls_back_when_full(app: ForumApp) -> None:
    run(app.hierarchy.add_rep_to_track("cs", "cs-track-3", 3, "U3"))
    run(app.hierarchy.add_rep_to_track("cs", "cs-track-3", 3, "U4"))
    before = run(app.contacts.list_contacts())

    new = Contact(
        name="Maya",
        roles=[Role(type=RoleType.REP, school_id="cs", track_id="cs-track-3", year=3)],
    )
    with pytest.raises(CapacityExceeded):
        run(app.roles.register_rep_contact("U1", new))
    assert run(app.contacts.list_contacts()) == before


def test_register_contact_without_rep_role(app: ForumApp) -> None:
    contact_id = run(app.roles.register_rep_contact("U1", Contact(name="Dana", roles=[Role(type="Secretary")])))
    assert run(app.contacts.get_contact(contact_id)).roles[0].title == "Secretary"
    assert run(app.roles.get_all_user_roles(contact_id)) == []


def test_sync_contact_roles_from_hierarchy(app: ForumApp) -> None:
    add_contact(
        app,
        "U7",
        "Stale",
        roles=[
            Role(type="Treasurer"),
            Role(type=RoleType.COORDINATOR, school_id="law"),
            Role(type=RoleType.REP, school_id="cs", track_id="cs-track-0", year=1, has_been_elected=True),
        ],
    )
    run(app.hierarchy.add_rep_to_track("cs", "cs-track-2", 3, "U7"))
    run(app.hierarchy.add_rep_to_track("cs", "cs-track-0", 1, "U7"))

    synced = run(app.roles.sync_contact_roles("U7"))
    summary = [(r.type, r.track_id, r.year, r.has_been_elected) for r in synced.roles]
    assert summary == [
        (RoleType.REP, "cs-track-0", 1, True),
        (RoleType.REP, "cs-track-2", 3, None),
        ("Treasurer", None, None, None),
    ]
    assert run(app.contacts.get_contact("U7")).roles == synced.roles


def test_sync_contact_roles_errors() -> None:
    app = create_app(Settings())
    with pytest.raises(NotInitialized):
        run(app.roles.sync_contact_roles("U1"))
    run(app.roles.initialize_user_role("U1", "head@example.com"))
    with pytest.raises(NotFound):
        run(app.roles.sync_contact_roles("U1"))
