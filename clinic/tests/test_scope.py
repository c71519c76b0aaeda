import pytest

from clinic.models import Hospital, Patient, Role, User
from clinic.services.scope import GLOBAL, SELF, TENANT, Scope, resolve_scope


def make(role, hospital_id=None, uid=1):
    return User(id=uid, role=role, hospital_id=hospital_id)


@pytest.mark.parametrize('role', [Role.ADMIN, Role.SUPER_ADMIN])
def test_elevated_roles_are_global(role):
    scope = resolve_scope(make(role, hospital_id=3))
    assert scope.kind == GLOBAL
    assert not scope.is_empty


@pytest.mark.parametrize('role', [Role.DOCTOR, Role.THERAPIST, Role.SUPPORT, Role.HOSPITAL_ADMIN])
def test_staff_roles_are_tenant_bound(role):
    scope = resolve_scope(make(role, hospital_id=3))
    assert scope == Scope(TENANT, hospital_id=3)


def test_staff_without_hospital_gets_empty_scope():
    assert resolve_scope(make(Role.DOCTOR)).is_empty


@pytest.mark.parametrize('role', [Role.PATIENT, Role.GUARDIAN])
def test_self_service_roles_see_own_records(role):
    assert resolve_scope(make(role, uid=9)) == Scope(SELF, user_id=9)


def test_unknown_role_sees_nothing():
    assert resolve_scope(make('janitor')).is_empty


@pytest.mark.django_db
def test_tenant_filter_never_leaks_other_hospitals():
    h1 = Hospital.objects.create(name='H1')
    h2 = Hospital.objects.create(name='H2')
    Patient.objects.create(hospital=h1, name='a')
    Patient.objects.create(hospital=h2, name='b')
    qs = resolve_scope(make(Role.DOCTOR, hospital_id=h1.pk)).filter(Patient.objects.all())
    assert [p.name for p in qs] == ['a']


@pytest.mark.django_db
def test_self_filter_matches_user_or_guardian_once():
    h = Hospital.objects.create(name='H')
    u = User.objects.create_user(username='pg', password='x', role=Role.GUARDIAN)
    p = Patient.objects.create(hospital=h, name='kid', user=u)
    p.guardians.add(u)
    Patient.objects.create(hospital=h, name='other')
    qs = Scope(SELF, user_id=u.pk).filter(Patient.objects.all(), owner_fields=('user_id', 'guardians'))
    assert list(qs) == [p]
