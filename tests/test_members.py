import uuid
from datetime import date

import pytest

from parish.core.errors import NotFoundError, ValidationError
from parish.models import Group, GroupMembership, Ministry, Sex, Zone
from parish.services.member import MemberRepository, MinistryRepository


def test_create_requires_identity_fields(db):
    repo = MemberRepository(db)
    with pytest.raises(ValidationError):
        repo.create({"surname": "  ", "given_name": "Jean", "sex": "M"})
    with pytest.raises(ValidationError):
        repo.create({"surname": "Rakoto", "given_name": "", "sex": "M"})
    with pytest.raises(ValidationError):
        repo.create({"surname": "Rakoto", "given_name": "Jean", "sex": "X"})
    with pytest.raises(ValidationError):
        repo.create({"surname": "Rakoto", "given_name": "Jean"})
    assert repo.count() == 0


def test_create_null_coalesces_optional_fields(db):
    member = MemberRepository(db).create({
        "surname": " Rakoto ",
        "given_name": "Jean",
        "sex": "M",
        "phone": "",
        "neighborhood": "   ",
        "church_function": "Diakona",
    })
    assert member.surname == "Rakoto"
    assert member.phone is None
    assert member.neighborhood is None
    assert member.church_function == "Diakona"
    assert member.registration_date == date.today()
    assert member.communicant is False


def test_create_rejects_unknown_ministry(db):
    with pytest.raises(ValidationError):
        MemberRepository(db).create({"surname": "Rabe", "given_name": "Lova", "sex": "F", "ministry_id": uuid.uuid4()})


def test_list_filters_and_order(db, make_member):
    make_member("Razafy", "Hanta", Sex.FEMALE, neighborhood="Tanambao", communicant=True)
    make_member("Andria", "Paul", Sex.MALE, neighborhood="Tanambao", zone=Zone.SECOND)
    make_member("Rakoto", "Jean", Sex.MALE, neighborhood="Ambalakininy")
    repo = MemberRepository(db)

    assert [m.surname for m in repo.list()] == ["Andria", "Rakoto", "Razafy"]
    assert [m.surname for m in repo.list(search="raK")] == ["Rakoto"]
    assert [m.surname for m in repo.list(sex="F")] == ["Razafy"]
    assert [m.surname for m in repo.list(neighborhood="Tanambao")] == ["Andria", "Razafy"]
    assert [m.surname for m in repo.list(zone=Zone.SECOND)] == ["Andria"]
    assert [m.surname for m in repo.list(communicant=True)] == ["Razafy"]
    assert repo.count(communicant=False) == 2


def test_update_validates_patch(db, make_member):
    member = make_member()
    repo = MemberRepository(db)
    updated = repo.update(member.id, {"church_function": "Mpitandrina", "zone": "fahatelo"})
    assert updated.church_function == "Mpitandrina"
    assert updated.zone is Zone.THIRD
    with pytest.raises(ValidationError):
        repo.update(member.id, {"surname": ""})
    with pytest.raises(ValidationError):
        repo.update(member.id, {"zone": "faharoa-be"})


def test_update_and_delete_missing_member(db):
    repo = MemberRepository(db)
    with pytest.raises(NotFoundError):
        repo.update(uuid.uuid4(), {"phone": "034"})
    with pytest.raises(NotFoundError):
        repo.delete(uuid.uuid4())
    assert repo.get_by_id(uuid.uuid4()) is None


def test_delete_removes_group_links_but_not_groups(db, make_member):
    member = make_member()
    group = Group(name="Chorale")
    db.add(group)
    db.commit()
    db.add(GroupMembership(member_id=member.id, group_id=group.id))
    db.commit()

    MemberRepository(db).delete(member.id)

    assert db.query(GroupMembership).count() == 0
    assert db.query(Group).count() == 1
    assert MemberRepository(db).count() == 0


def test_groups_of_member(db, make_member):
    member = make_member()
    other = make_member("Rabe", "Lova", Sex.FEMALE)
    choir = Group(name="Chorale")
    youth = Group(name="Tanora")
    db.add_all([choir, youth])
    db.commit()
    db.add_all([
        GroupMembership(member_id=member.id, group_id=youth.id),
        GroupMembership(member_id=member.id, group_id=choir.id),
        GroupMembership(member_id=other.id, group_id=youth.id),
    ])
    db.commit()

    assert [g.name for g in MemberRepository(db).groups_of(member.id)] == ["Chorale", "Tanora"]


def test_ministry_repository(db):
    repo = MinistryRepository(db)
    with pytest.raises(ValidationError):
        repo.create({"name": " "})
    slk = repo.create({"name": "Sampana Lehilahy Kristiana", "description": ""})
    assert slk.description is None
    repo.create({"name": "Dorkasy"})
    assert [m.name for m in repo.list()] == ["Dorkasy", "Sampana Lehilahy Kristiana"]
    repo.delete(slk.id)
    assert db.query(Ministry).count() == 1
