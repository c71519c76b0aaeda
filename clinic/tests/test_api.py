"""
Integration tests for the clinic API.

These exercise tenant isolation, the appointment lifecycle, staff
roster management and the error envelope through DRF's APIClient with
``force_authenticate``.
"""
from datetime import timedelta

from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from ..models import Appointment, Hospital, Notification, Patient, Prescription, Role, User


def make_user(username, role, hospital=None, **extra):
    return User.objects.create_user(username=username, password='Str0ng-Passw0rd!', role=role,
                                    hospital=hospital, email=f'{username}@example.com', **extra)


class ClinicAPITestCase(APITestCase):
    def setUp(self) -> None:
        self.h1 = Hospital.objects.create(name='Green Valley')
        self.h2 = Hospital.objects.create(name='Blue Lake')
        self.super_admin = make_user('root', Role.SUPER_ADMIN)
        self.admin = make_user('ops', Role.ADMIN)
        self.ha1 = make_user('ha1', Role.HOSPITAL_ADMIN, self.h1)
        self.ha2 = make_user('ha2', Role.HOSPITAL_ADMIN, self.h2)
        self.doctor1 = make_user('doc1', Role.DOCTOR, self.h1)
        self.doctor2 = make_user('doc2', Role.DOCTOR, self.h2)
        self.therapist1 = make_user('ther1', Role.THERAPIST, self.h1)
        self.patient = make_user('pat', Role.PATIENT)
        self.other_patient = make_user('pat2', Role.PATIENT)
        self.guardian = make_user('guard', Role.GUARDIAN)

    def as_user(self, user):
        self.client.force_authenticate(user=user)

    def slot(self, hours=24):
        start = timezone.now() + timedelta(hours=hours)
        return start.isoformat(), (start + timedelta(minutes=30)).isoformat()

    def book(self, user=None, staff=None, hospital=None):
        self.as_user(user or self.patient)
        start, end = self.slot()
        staff = staff or self.doctor1
        return self.client.post('/api/appointments', {
            'hospital_id': (hospital or self.h1).pk, 'staff_id': staff.pk,
            'type': staff.role, 'start_time': start, 'end_time': end,
        }, format='json')


class HospitalTests(ClinicAPITestCase):
    def test_hospital_admin_lists_only_own_hospital(self):
        self.as_user(self.ha1)
        resp = self.client.get('/api/hospitals')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertTrue(resp.data['ok'])
        self.assertEqual([h['id'] for h in resp.data['hospitals']], [self.h1.pk])

    def test_patient_sees_every_hospital(self):
        self.as_user(self.patient)
        resp = self.client.get('/api/hospitals')
        self.assertEqual(len(resp.data['hospitals']), 2)

    def test_create_auto_assigns_creator_without_hospital(self):
        orphan = make_user('orphan', Role.HOSPITAL_ADMIN)
        self.as_user(orphan)
        resp = self.client.post('/api/hospitals', {'name': 'New Clinic'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        orphan.refresh_from_db()
        self.assertEqual(orphan.hospital_id, resp.data['hospital']['id'])

    def test_create_keeps_existing_affiliation(self):
        self.as_user(self.ha1)
        resp = self.client.post('/api/hospitals', {'name': 'Branch'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.ha1.refresh_from_db()
        self.assertEqual(self.ha1.hospital_id, self.h1.pk)

    def test_super_admin_is_never_auto_assigned(self):
        self.as_user(self.super_admin)
        self.client.post('/api/hospitals', {'name': 'HQ'}, format='json')
        self.super_admin.refresh_from_db()
        self.assertIsNone(self.super_admin.hospital_id)

    def test_create_with_nested_admin(self):
        self.as_user(self.super_admin)
        resp = self.client.post('/api/hospitals', {
            'name': 'Riverside', 'admin_email': 'boss@riverside.org',
            'admin_password': 'Riverside-2024!', 'admin_name': 'Boss',
        }, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        admin = User.objects.get(email='boss@riverside.org')
        self.assertEqual(admin.role, Role.HOSPITAL_ADMIN)
        self.assertEqual(admin.hospital_id, resp.data['hospital']['id'])
        self.assertNotIn('password', resp.data['admin'])

    def test_nested_admin_cannot_take_over_elevated_account(self):
        self.as_user(self.ha1)
        resp = self.client.post('/api/hospitals', {
            'name': 'Hijack', 'admin_email': self.super_admin.email, 'admin_password': 'Whatever-123!',
        }, format='json')
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertFalse(Hospital.objects.filter(name='Hijack').exists())

    def assertUntouched(self, user, role, hospital):
        user.refresh_from_db()
        self.assertEqual(user.role, role)
        self.assertEqual(user.hospital_id, hospital.pk)
        self.assertTrue(user.check_password('Str0ng-Passw0rd!'))

    def test_nested_admin_cannot_take_over_foreign_doctor(self):
        self.as_user(self.ha1)
        resp = self.client.post('/api/hospitals', {
            'name': 'Poach', 'admin_email': self.doctor2.email, 'admin_password': 'Hijacked-Pass-1!',
        }, format='json')
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(resp.data['error']['code'], 'conflict')
        self.assertUntouched(self.doctor2, Role.DOCTOR, self.h2)
        self.assertFalse(Hospital.objects.filter(name='Poach').exists())

    def test_nested_admin_cannot_take_over_foreign_hospital_admin(self):
        self.as_user(self.ha1)
        resp = self.client.post('/api/hospitals', {
            'name': 'Poach', 'admin_email': self.ha2.email, 'admin_password': 'Hijacked-Pass-1!',
        }, format='json')
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertUntouched(self.ha2, Role.HOSPITAL_ADMIN, self.h2)
        self.assertFalse(Hospital.objects.filter(name='Poach').exists())

    def test_nested_admin_adopts_own_staff_keeping_password(self):
        self.as_user(self.ha1)
        resp = self.client.post('/api/hospitals', {
            'name': 'Annex', 'admin_email': self.doctor1.email, 'admin_password': 'Replaced-Pass-1!',
        }, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertUntouched(self.doctor1, Role.HOSPITAL_ADMIN, Hospital.objects.get(name='Annex'))

    def test_doctor_cannot_create_hospital(self):
        self.as_user(self.doctor1)
        resp = self.client.post('/api/hospitals', {'name': 'Nope'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(resp.data, {'ok': False, 'error': {'code': 'forbidden', 'message': "Role 'doctor' may not create hospital"}})

    def test_hospital_admin_cannot_update_other_hospital(self):
        self.as_user(self.ha1)
        resp = self.client.put(f'/api/hospitals/{self.h2.pk}', {'name': 'Mine now'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        resp = self.client.put(f'/api/hospitals/{self.h1.pk}', {'city': 'Pune'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data['hospital']['city'], 'Pune')

    def test_unknown_hospital_is_404(self):
        self.as_user(self.super_admin)
        resp = self.client.get('/api/hospitals/9999')
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(resp.data['error']['code'], 'not_found')

    def test_delete_cascades_to_patients(self):
        Patient.objects.create(hospital=self.h2, name='x')
        self.as_user(self.admin)
        resp = self.client.delete(f'/api/hospitals/{self.h2.pk}')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertFalse(Patient.objects.filter(hospital_id=self.h2.pk).exists())
        self.ha2.refresh_from_db()
        self.assertIsNone(self.ha2.hospital_id)

    def test_delete_deactivates_hospital_staff(self):
        self.as_user(self.super_admin)
        resp = self.client.delete(f'/api/hospitals/{self.h2.pk}')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        for user in (self.ha2, self.doctor2):
            user.refresh_from_db()
            self.assertFalse(user.is_active)
        self.doctor1.refresh_from_db()
        self.assertTrue(self.doctor1.is_active)
        self.client.force_authenticate(user=None)
        resp = self.client.post('/api/auth/login', {'identifier': 'doc2', 'password': 'Str0ng-Passw0rd!'},
                                format='json')
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)


class HospitalAdminTests(ClinicAPITestCase):
    def test_super_admin_creates_admin_for_existing_hospital(self):
        self.as_user(self.super_admin)
        resp = self.client.post(f'/api/hospitals/{self.h2.pk}/admin', {
            'email': 'chief@bluelake.org', 'password': 'Blue-Lake-2024!', 'full_name': 'Chief',
        }, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(resp.data['admin']['role'], 'hospital_admin')
        self.assertEqual(resp.data['admin']['hospital_id'], self.h2.pk)
        resp = self.client.post(f'/api/hospitals/{self.h2.pk}/admin', {
            'email': 'chief@bluelake.org', 'password': 'Blue-Lake-2024!',
        }, format='json')
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)

    def test_only_super_admin_manages_hospital_admins(self):
        for user in (self.admin, self.ha2):
            self.as_user(user)
            resp = self.client.post(f'/api/hospitals/{self.h2.pk}/admin', {
                'email': 'chief@bluelake.org', 'password': 'Blue-Lake-2024!',
            }, format='json')
            self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
            resp = self.client.put(f'/api/hospitals/{self.h2.pk}/admin', {'user_id': self.doctor2.pk}, format='json')
            self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(User.objects.filter(email='chief@bluelake.org').exists())

    def test_missing_hospital_is_404(self):
        self.as_user(self.super_admin)
        resp = self.client.put('/api/hospitals/9999/admin', {'user_id': self.doctor1.pk}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

    def test_reassign_by_user_id_or_email(self):
        self.as_user(self.super_admin)
        resp = self.client.put(f'/api/hospitals/{self.h2.pk}/admin', {'user_id': self.ha1.pk}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data['admin']['hospital_id'], self.h2.pk)
        resp = self.client.put(f'/api/hospitals/{self.h1.pk}/admin', {'email': self.doctor1.email}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.doctor1.refresh_from_db()
        self.assertEqual(self.doctor1.role, Role.HOSPITAL_ADMIN)
        self.assertTrue(self.doctor1.check_password('Str0ng-Passw0rd!'))
        self.ha2.refresh_from_db()
        self.assertEqual(self.ha2.role, Role.HOSPITAL_ADMIN)

    def test_reassign_rejects_elevated_and_unknown_accounts(self):
        self.as_user(self.super_admin)
        resp = self.client.put(f'/api/hospitals/{self.h1.pk}/admin', {'user_id': self.admin.pk}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        resp = self.client.put(f'/api/hospitals/{self.h1.pk}/admin', {'email': 'nobody@example.com'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        resp = self.client.put(f'/api/hospitals/{self.h1.pk}/admin', {}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_markup_is_stripped(self):
        self.as_user(self.super_admin)
        resp = self.client.post('/api/hospitals', {'name': '<b>Sunrise</b><script>x()</script>'}, format='json')
        self.assertEqual(resp.data['hospital']['name'], 'Sunrisex()')


class StaffTests(ClinicAPITestCase):
    def staff_body(self, **overrides):
        body = {'full_name': 'Dr Who', 'email': 'who@example.com', 'password': 'Tardis-1963!', 'role': 'doctor'}
        body.update(overrides)
        return body

    def test_hospital_admin_cannot_list_other_roster(self):
        self.as_user(self.ha1)
        resp = self.client.get(f'/api/hospitals/{self.h2.pk}/staff')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_roster_lists_only_clinical_staff(self):
        self.as_user(self.patient)
        resp = self.client.get(f'/api/hospitals/{self.h1.pk}/staff')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        ids = {u['id'] for u in resp.data['staff']}
        self.assertEqual(ids, {self.doctor1.pk, self.therapist1.pk})
        self.assertNotIn('password', resp.data['staff'][0])

    def test_assign_stamps_path_hospital(self):
        self.as_user(self.super_admin)
        resp = self.client.post(f'/api/hospitals/{self.h1.pk}/staff',
                                self.staff_body(hospital_id=self.h2.pk), format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(resp.data['user']['hospital_id'], self.h1.pk)
        self.assertEqual(resp.data['user']['username'], 'who@example.com')

    def test_assign_rejects_non_roster_roles(self):
        self.as_user(self.super_admin)
        for role in ('hospital_admin', 'admin', 'patient', 'super_admin'):
            resp = self.client.post(f'/api/hospitals/{self.h1.pk}/staff', self.staff_body(role=role), format='json')
            self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST, role)
        self.assertFalse(User.objects.filter(email='who@example.com').exists())

    def test_assign_requires_fields(self):
        self.as_user(self.ha1)
        resp = self.client.post(f'/api/hospitals/{self.h1.pk}/staff', {'role': 'doctor'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data['error']['code'], 'validation_failed')

    def test_assign_to_other_hospital_is_forbidden(self):
        self.as_user(self.ha1)
        resp = self.client.post(f'/api/hospitals/{self.h2.pk}/staff', self.staff_body(), format='json')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_assign_to_missing_hospital_is_404(self):
        self.as_user(self.super_admin)
        resp = self.client.post('/api/hospitals/9999/staff', self.staff_body(), format='json')
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

    def test_duplicate_email_conflicts(self):
        self.as_user(self.ha1)
        first = self.client.post(f'/api/hospitals/{self.h1.pk}/staff', self.staff_body(), format='json')
        second = self.client.post(f'/api/hospitals/{self.h1.pk}/staff',
                                  self.staff_body(full_name='Impostor', role='support'), format='json')
        self.assertEqual(first.status_code, status.HTTP_201_CREATED)
        self.assertEqual(second.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(second.data['error']['code'], 'conflict')
        self.assertEqual(User.objects.filter(email='who@example.com').count(), 1)

    def test_duplicate_phone_conflicts(self):
        self.doctor1.phone = '+911234567890'
        self.doctor1.save()
        self.as_user(self.ha1)
        resp = self.client.post(f'/api/hospitals/{self.h1.pk}/staff',
                                self.staff_body(phone='+911234567890'), format='json')
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)

    def test_remove_staff(self):
        self.as_user(self.ha1)
        resp = self.client.delete(f'/api/hospitals/{self.h1.pk}/staff/{self.therapist1.pk}')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertFalse(User.objects.filter(pk=self.therapist1.pk).exists())

    def test_remove_staff_from_wrong_hospital(self):
        self.as_user(self.super_admin)
        resp = self.client.delete(f'/api/hospitals/{self.h1.pk}/staff/{self.doctor2.pk}')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_remove_non_roster_user(self):
        self.as_user(self.super_admin)
        resp = self.client.delete(f'/api/hospitals/{self.h1.pk}/staff/{self.ha1.pk}')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(User.objects.filter(pk=self.ha1.pk).exists())


class PatientTests(ClinicAPITestCase):
    def setUp(self) -> None:
        super().setUp()
        self.p1 = Patient.objects.create(hospital=self.h1, name='Asha', user=self.patient)
        self.p2 = Patient.objects.create(hospital=self.h2, name='Ravi')

    def test_staff_listing_is_tenant_bound(self):
        for user in (self.ha1, self.doctor1, self.therapist1):
            self.as_user(user)
            resp = self.client.get('/api/patients')
            self.assertEqual({p['hospital_id'] for p in resp.data['patients']}, {self.h1.pk})

    def test_super_admin_lists_everything(self):
        self.as_user(self.super_admin)
        resp = self.client.get('/api/patients')
        self.assertEqual(len(resp.data['patients']), 2)

    def test_admin_without_hospital_sees_empty_list(self):
        self.as_user(self.admin)
        resp = self.client.get('/api/patients')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data['patients'], [])

    def test_patient_and_guardian_see_linked_records(self):
        self.p2.guardians.add(self.guardian)
        self.as_user(self.patient)
        self.assertEqual([p['id'] for p in self.client.get('/api/patients').data['patients']], [self.p1.pk])
        self.as_user(self.guardian)
        self.assertEqual([p['id'] for p in self.client.get('/api/patients').data['patients']], [self.p2.pk])

    def test_create_ignores_body_hospital_for_hospital_admin(self):
        self.as_user(self.ha1)
        resp = self.client.post('/api/patients', {'name': 'Meera', 'hospital_id': self.h2.pk}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(resp.data['patient']['hospital_id'], self.h1.pk)

    def test_super_admin_must_name_hospital(self):
        self.as_user(self.super_admin)
        resp = self.client.post('/api/patients', {'name': 'Meera'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        resp = self.client.post('/api/patients', {'name': 'Meera', 'hospital_id': self.h2.pk}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(resp.data['patient']['hospital_id'], self.h2.pk)

    def test_staff_without_hospital_cannot_create(self):
        loose = make_user('loose', Role.DOCTOR)
        self.as_user(loose)
        resp = self.client.post('/api/patients', {'name': 'Meera'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_patient_cannot_create_records(self):
        self.as_user(self.patient)
        resp = self.client.post('/api/patients', {'name': 'Me'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_cross_tenant_read_is_forbidden(self):
        self.as_user(self.doctor1)
        resp = self.client.get(f'/api/patients/{self.p2.pk}')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_update_cannot_move_hospital(self):
        self.as_user(self.ha1)
        resp = self.client.put(f'/api/patients/{self.p1.pk}', {'hospital_id': self.h2.pk}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        resp = self.client.put(f'/api/patients/{self.p1.pk}', {'medical_history': 'Asthma'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data['patient']['medical_history'], 'Asthma')

    def test_super_admin_may_move_hospital(self):
        self.as_user(self.super_admin)
        resp = self.client.put(f'/api/patients/{self.p1.pk}', {'hospital_id': self.h2.pk}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data['patient']['hospital_id'], self.h2.pk)

    def test_guardians_assign_and_remove(self):
        self.as_user(self.ha1)
        resp = self.client.post(f'/api/patients/{self.p1.pk}/guardians', {'guardian_id': self.guardian.pk}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data['patient']['guardian_ids'], [self.guardian.pk])
        resp = self.client.delete(f'/api/patients/{self.p1.pk}/guardians/{self.guardian.pk}')
        self.assertEqual(resp.data['patient']['guardian_ids'], [])

    def test_guardian_must_have_guardian_role(self):
        self.as_user(self.ha1)
        resp = self.client.post(f'/api/patients/{self.p1.pk}/guardians', {'guardian_id': self.other_patient.pk}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_linked_user_must_have_patient_role(self):
        self.as_user(self.ha1)
        resp = self.client.post('/api/patients', {'name': 'Fake', 'user_id': self.doctor2.pk}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data['error']['code'], 'validation_failed')
        resp = self.client.put(f'/api/patients/{self.p1.pk}', {'user_id': self.admin.pk}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.p1.refresh_from_db()
        self.assertEqual(self.p1.user_id, self.patient.pk)
        resp = self.client.post('/api/patients', {'name': 'Real', 'user_id': self.other_patient.pk}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(resp.data['patient']['user_id'], self.other_patient.pk)

    def appointment(self, patient, hospital, staff, hours=24):
        start = timezone.now() + timedelta(hours=hours)
        return Appointment.objects.create(hospital=hospital, patient=patient, staff=staff, type=staff.role,
                                          start_time=start, end_time=start + timedelta(minutes=30))

    def test_with_records_counts_tenant_appointments(self):
        self.appointment(self.patient, self.h1, self.doctor1, hours=24)
        latest = self.appointment(self.patient, self.h1, self.therapist1, hours=48)
        self.appointment(self.patient, self.h2, self.doctor2, hours=72)
        self.as_user(self.ha1)
        resp = self.client.get('/api/patients/with-records')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        rows = resp.data['patients']
        self.assertEqual([r['patient']['id'] for r in rows], [self.p1.pk])
        self.assertEqual(rows[0]['appointment_count'], 2)
        self.assertEqual(rows[0]['last_appointment'], latest.start_time.isoformat())

    def test_with_records_without_appointments(self):
        self.as_user(self.super_admin)
        resp = self.client.get('/api/patients/with-records', {'hospital_id': self.h2.pk})
        [row] = resp.data['patients']
        self.assertEqual(row['patient']['id'], self.p2.pk)
        self.assertEqual(row['appointment_count'], 0)
        self.assertIsNone(row['last_appointment'])

    def test_sync_creates_missing_records_once(self):
        self.appointment(self.patient, self.h1, self.doctor1)
        self.appointment(self.other_patient, self.h1, self.doctor1)
        self.appointment(self.other_patient, self.h1, self.therapist1)
        self.appointment(self.guardian, self.h2, self.doctor2)
        self.as_user(self.ha1)
        resp = self.client.post('/api/patients/sync-from-appointments')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data['created'], 1)
        record = resp.data['patients'][0]
        self.assertEqual(record['user_id'], self.other_patient.pk)
        self.assertEqual(record['hospital_id'], self.h1.pk)
        self.assertEqual(record['email'], self.other_patient.email)
        resp = self.client.post('/api/patients/sync-from-appointments')
        self.assertEqual(resp.data['created'], 0)
        self.assertFalse(Patient.objects.filter(hospital=self.h2, user=self.guardian).exists())

    def test_sync_hospital_choice_follows_policy(self):
        self.appointment(self.other_patient, self.h2, self.doctor2)
        self.as_user(self.super_admin)
        resp = self.client.post('/api/patients/sync-from-appointments')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        resp = self.client.post(f'/api/patients/sync-from-appointments?hospital_id={self.h2.pk}')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data['created'], 1)
        for user in (self.patient, self.guardian):
            self.as_user(user)
            resp = self.client.post('/api/patients/sync-from-appointments')
            self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_delete_other_tenant_patient_forbidden(self):
        self.as_user(self.ha1)
        resp = self.client.delete(f'/api/patients/{self.p2.pk}')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertTrue(Patient.objects.filter(pk=self.p2.pk).exists())


class AppointmentTests(ClinicAPITestCase):
    def test_patient_books_and_lists(self):
        resp = self.book()
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        appt = resp.data['appointment']
        self.assertEqual(appt['status'], 'pending')
        self.assertEqual(appt['patient_id'], self.patient.pk)
        self.assertEqual(appt['type'], 'doctor')
        resp = self.client.get('/api/appointments/mine')
        self.assertEqual([a['id'] for a in resp.data['appointments']], [appt['id']])

    def test_type_follows_staff_role(self):
        self.as_user(self.patient)
        start, end = self.slot()
        resp = self.client.post('/api/appointments', {
            'hospital_id': self.h1.pk, 'staff_id': self.therapist1.pk, 'type': 'doctor',
            'start_time': start, 'end_time': end,
        }, format='json')
        self.assertEqual(resp.data['appointment']['type'], 'therapist')

    def test_staff_from_other_hospital_rejected(self):
        resp = self.book(staff=self.doctor2, hospital=self.h1)
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data['error']['message'], 'Staff does not belong to this hospital')

    def test_non_clinician_cannot_be_booked(self):
        resp = self.book(staff=self.ha1)
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_missing_staff_is_404(self):
        self.as_user(self.patient)
        start, end = self.slot()
        resp = self.client.post('/api/appointments', {
            'hospital_id': self.h1.pk, 'staff_id': 9999, 'type': 'doctor', 'start_time': start, 'end_time': end,
        }, format='json')
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

    def test_end_must_follow_start(self):
        self.as_user(self.patient)
        start, end = self.slot()
        resp = self.client.post('/api/appointments', {
            'hospital_id': self.h1.pk, 'staff_id': self.doctor1.pk, 'type': 'doctor',
            'start_time': end, 'end_time': start,
        }, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_office_books_on_behalf_of_patient(self):
        self.as_user(self.ha1)
        start, end = self.slot()
        body = {'hospital_id': self.h1.pk, 'staff_id': self.doctor1.pk, 'type': 'doctor',
                'start_time': start, 'end_time': end, 'patient_id': self.patient.pk}
        resp = self.client.post('/api/appointments', body, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(resp.data['appointment']['patient_id'], self.patient.pk)
        self.as_user(self.other_patient)
        resp = self.client.post('/api/appointments', body, format='json')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_staff_schedule(self):
        self.book()
        self.book(staff=self.therapist1)
        self.as_user(self.doctor1)
        resp = self.client.get('/api/appointments/staff/mine')
        self.assertEqual([a['staff_id'] for a in resp.data['appointments']], [self.doctor1.pk])

    def test_office_listing_is_tenant_bound(self):
        self.book()
        self.book(staff=self.doctor2, hospital=self.h2)
        self.as_user(self.ha2)
        resp = self.client.get('/api/appointments')
        self.assertEqual({a['hospital_id'] for a in resp.data['appointments']}, {self.h2.pk})
        self.as_user(self.admin)
        self.assertEqual(len(self.client.get('/api/appointments').data['appointments']), 2)

    def test_owner_cancels(self):
        appt_id = self.book().data['appointment']['id']
        resp = self.client.post(f'/api/appointments/{appt_id}/cancel')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data['appointment']['status'], 'cancelled')

    def test_stranger_cannot_cancel(self):
        appt_id = self.book().data['appointment']['id']
        for user in (self.other_patient, self.doctor1, self.guardian):
            self.as_user(user)
            resp = self.client.post(f'/api/appointments/{appt_id}/cancel')
            self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(Appointment.objects.get(pk=appt_id).status, 'pending')

    def test_office_roles_cancel_any(self):
        for user in (self.super_admin, self.admin, self.ha2):
            appt_id = self.book().data['appointment']['id']
            self.as_user(user)
            resp = self.client.post(f'/api/appointments/{appt_id}/cancel')
            self.assertEqual(resp.status_code, status.HTTP_200_OK)

    def test_terminal_appointments_cannot_change(self):
        appt_id = self.book().data['appointment']['id']
        for final in (Appointment.STATUS_CANCELLED, Appointment.STATUS_COMPLETED):
            Appointment.objects.filter(pk=appt_id).update(status=final)
            resp = self.client.post(f'/api/appointments/{appt_id}/cancel')
            self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
            self.assertEqual(resp.data['error']['message'], 'Cannot cancel a completed/cancelled appointment')
            start, end = self.slot(48)
            resp = self.client.patch(f'/api/appointments/{appt_id}/reschedule',
                                     {'start_time': start, 'end_time': end}, format='json')
            self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_reschedule_resets_to_pending(self):
        appt_id = self.book().data['appointment']['id']
        Appointment.objects.filter(pk=appt_id).update(status=Appointment.STATUS_CONFIRMED)
        start, end = self.slot(72)
        resp = self.client.patch(f'/api/appointments/{appt_id}/reschedule',
                                 {'start_time': start, 'end_time': end}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data['appointment']['status'], 'pending')
        appt = Appointment.objects.get(pk=appt_id)
        self.assertEqual(appt.end_time - appt.start_time, timedelta(minutes=30))

    def test_assigned_doctor_confirms_then_completes(self):
        appt_id = self.book().data['appointment']['id']
        self.as_user(self.doctor1)
        resp = self.client.post(f'/api/appointments/{appt_id}/confirm')
        self.assertEqual(resp.data['appointment']['status'], 'confirmed')
        resp = self.client.post(f'/api/appointments/{appt_id}/confirm')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        resp = self.client.post(f'/api/appointments/{appt_id}/complete')
        self.assertEqual(resp.data['appointment']['status'], 'completed')

    def test_patient_cannot_confirm(self):
        appt_id = self.book().data['appointment']['id']
        resp = self.client.post(f'/api/appointments/{appt_id}/confirm')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)


class PrescriptionTests(ClinicAPITestCase):
    def setUp(self) -> None:
        super().setUp()
        self.p1 = Patient.objects.create(hospital=self.h1, name='Asha', user=self.patient)
        self.p2 = Patient.objects.create(hospital=self.h2, name='Ravi')

    def write(self, user, patient, **extra):
        self.as_user(user)
        body = {'patient_id': patient.pk, 'complaints': 'Headache', 'meds': [{'name': 'Brahmi', 'dose': '5ml'}]}
        body.update(extra)
        return self.client.post('/api/prescriptions', body, format='json')

    def test_doctor_writes_for_own_tenant(self):
        resp = self.write(self.doctor1, self.p1)
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        rx = resp.data['prescription']
        self.assertEqual(rx['hospital_id'], self.h1.pk)
        self.assertEqual(rx['patient_name'], 'Asha')
        self.assertEqual(rx['doctor_id'], self.doctor1.pk)

    def test_cannot_write_for_other_tenant_patient(self):
        resp = self.write(self.doctor1, self.p2)
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_actor_without_hospital_cannot_write(self):
        resp = self.write(self.super_admin, self.p1)
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_listing_and_patient_filter(self):
        self.write(self.doctor1, self.p1)
        self.write(self.doctor2, self.p2)
        self.as_user(self.ha1)
        resp = self.client.get('/api/prescriptions')
        self.assertEqual([rx['hospital_id'] for rx in resp.data['prescriptions']], [self.h1.pk])
        resp = self.client.get(f'/api/prescriptions?patient_id={self.p2.pk}')
        self.assertEqual(resp.data['prescriptions'], [])

    def test_super_admin_without_hospital_sees_none(self):
        self.write(self.doctor1, self.p1)
        self.as_user(self.super_admin)
        resp = self.client.get('/api/prescriptions')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data['prescriptions'], [])

    def test_patient_sees_own_prescriptions(self):
        self.write(self.doctor1, self.p1)
        self.as_user(self.patient)
        resp = self.client.get('/api/prescriptions')
        self.assertEqual(len(resp.data['prescriptions']), 1)
        self.as_user(self.other_patient)
        self.assertEqual(self.client.get('/api/prescriptions').data['prescriptions'], [])

    def test_delete(self):
        rx_id = self.write(self.doctor1, self.p1).data['prescription']['id']
        self.as_user(self.doctor2)
        self.assertEqual(self.client.delete(f'/api/prescriptions/{rx_id}').status_code, status.HTTP_403_FORBIDDEN)
        self.as_user(self.patient)
        self.assertEqual(self.client.delete(f'/api/prescriptions/{rx_id}').status_code, status.HTTP_403_FORBIDDEN)
        self.as_user(self.ha1)
        self.assertEqual(self.client.delete(f'/api/prescriptions/{rx_id}').status_code, status.HTTP_200_OK)
        self.assertFalse(Prescription.objects.filter(pk=rx_id).exists())


class NotificationTests(ClinicAPITestCase):
    def test_send_list_and_read(self):
        self.as_user(self.ha1)
        resp = self.client.post('/api/notifications', {
            'recipient_id': self.doctor1.pk, 'title': 'Rota', 'message': 'Night shift on Friday',
        }, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        note_id = resp.data['notification']['id']
        self.as_user(self.doctor1)
        resp = self.client.get('/api/notifications?unread=true')
        self.assertEqual([n['id'] for n in resp.data['notifications']], [note_id])
        resp = self.client.post(f'/api/notifications/{note_id}/read')
        self.assertTrue(resp.data['notification']['is_read'])

    def test_staff_can_notify_own_patients(self):
        Patient.objects.create(hospital=self.h1, name='Asha', user=self.patient)
        self.as_user(self.doctor1)
        resp = self.client.post('/api/notifications', {'recipient_id': self.patient.pk, 'title': 'Reminder'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        resp = self.client.post('/api/notifications', {'recipient_id': self.other_patient.pk, 'title': 'Spam'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_patient_cannot_send(self):
        self.as_user(self.patient)
        resp = self.client.post('/api/notifications', {'recipient_id': self.doctor1.pk, 'title': 'Hi'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_others_notifications_are_private(self):
        note = Notification.objects.create(recipient=self.doctor1, title='private')
        self.as_user(self.doctor2)
        self.assertEqual(self.client.get('/api/notifications').data['notifications'], [])
        resp = self.client.post(f'/api/notifications/{note.pk}/read')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_read_all(self):
        Notification.objects.create(recipient=self.patient, title='a')
        Notification.objects.create(recipient=self.patient, title='b')
        Notification.objects.create(recipient=self.doctor1, title='c')
        self.as_user(self.patient)
        resp = self.client.post('/api/notifications/read-all')
        self.assertEqual(resp.data['updated'], 2)
        self.assertFalse(Notification.objects.filter(recipient=self.doctor1, is_read=True).exists())
