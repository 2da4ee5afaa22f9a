"""
Integration tests for the Patient360 API.

These tests exercise authentication, access control on the medication
endpoints, the organized storage of uploaded files and the doctor
registration flow.  They use Django REST Framework's APIClient within the
APITestCase base class.

To run the tests:

```
pytest -q records/tests
```
"""
import os
import re
import shutil
import tempfile
from datetime import timedelta

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import override_settings
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from records.models import AuditEvent, DoctorProfile, DoctorRequest, EcgRecord, PatientProfile, User, Visit

PNG = b'\x89PNG\r\n\x1a\n' + b'\x00' * 32
PDF = b'%PDF-1.4\n%test\n'


class MediaRootMixin:
    def use_temp_media_root(self) -> str:
        media_root = tempfile.mkdtemp()
        override = override_settings(MEDIA_ROOT=media_root)
        override.enable()
        self.addCleanup(override.disable)
        self.addCleanup(shutil.rmtree, media_root, ignore_errors=True)
        return media_root


class Patient360APITests(MediaRootMixin, APITestCase):
    def setUp(self) -> None:
        """Two patients, one doctor and one admin; patient1 has two visits."""
        self.media_root = self.use_temp_media_root()

        self.patient1 = User.objects.create_user(username='patient1', password='P@ssw0rd1', role='patient')
        PatientProfile.objects.create(user=self.patient1, national_id='12345678901')
        self.patient2 = User.objects.create_user(username='patient2', password='P@ssw0rd1', role='patient')
        PatientProfile.objects.create(user=self.patient2, national_id='10987654321')

        doctor_user = User.objects.create_user(username='doctor1', password='P@ssw0rd1', role='doctor',
                                               first_name='Sami', last_name='Haddad')
        self.doctor_user = doctor_user
        self.doctor = DoctorProfile.objects.create(user=doctor_user, specialization='Cardiology')
        self.admin_user = User.objects.create_user(username='admin1', password='P@ssw0rd1', role='admin')

        now = timezone.now()
        self.visit1 = Visit.objects.create(
            patient=self.patient1, doctor=self.doctor, visit_date=now - timedelta(days=3),
            status=Visit.STATUS_COMPLETED,
            prescribed_medications=[
                {'medicationName': 'Aspirin', 'dosage': '100mg', 'frequency': 'daily', 'duration': 'مستمر'},
                {'medicationName': 'Amoxicillin', 'dosage': '500mg', 'frequency': 'tid', 'duration': '7 days'},
            ],
        )
        self.visit2 = Visit.objects.create(
            patient=self.patient1, doctor=None, visit_date=now - timedelta(days=1),
            status=Visit.STATUS_COMPLETED,
            prescribed_medications=[
                {'medicationName': 'aspirin', 'dosage': '81mg', 'frequency': 'daily', 'duration': '30 days'},
            ],
        )

    def authenticate(self, user: User) -> APIClient:
        """Return an authenticated APIClient for the given user."""
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    # -- auth ---------------------------------------------------------------

    def test_login_returns_token(self):
        response = self.client.post(reverse('login_view'), {'username': 'patient1', 'password': 'P@ssw0rd1'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['ok'])
        self.assertTrue(response.data['token'])
        self.assertEqual(response.data['role'], 'patient')
        self.assertTrue(AuditEvent.objects.filter(action='login', user=self.patient1).exists())

    def test_login_with_email(self):
        self.patient1.email = 'lina@example.com'
        self.patient1.save(update_fields=['email'])
        response = self.client.post(reverse('login_view'), {'email': 'Lina@example.com', 'password': 'P@ssw0rd1'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['user']['id'], self.patient1.id)

    def test_login_with_wrong_password(self):
        response = self.client.post(reverse('login_view'), {'username': 'patient1', 'password': 'nope'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['ok'])
        response = self.client.post(reverse('login_view'), {'password': 'P@ssw0rd1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_bearer_token_is_accepted(self):
        token = self.client.post(reverse('login_view'), {'username': 'patient1', 'password': 'P@ssw0rd1'},
                                 format='json').data['token']
        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')
        response = client.get(reverse('current_medications', args=[self.patient1.id]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_anonymous_cannot_read_medications(self):
        response = self.client.get(reverse('current_medications', args=[self.patient1.id]))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertFalse(response.data['ok'])

    # -- medications --------------------------------------------------------

    def test_patient_reads_own_current_medications(self):
        client = self.authenticate(self.patient1)
        response = client.get(reverse('current_medications', args=[self.patient1.id]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        self.assertEqual(response.data['count'], 3)
        names = [m['medicationName'] for m in response.data['medications']]
        self.assertEqual(names, ['aspirin', 'Aspirin', 'Amoxicillin'])
        self.assertEqual(response.data['medications'][0]['doctorName'], 'غير محدد')
        self.assertEqual(response.data['medications'][1]['doctorName'], 'د. Sami Haddad')

    def test_patient_cannot_read_other_patient(self):
        client = self.authenticate(self.patient2)
        for name in ('current_medications', 'medication_history', 'medication_interactions'):
            response = client.get(reverse(name, args=[self.patient1.id]))
            self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
            self.assertFalse(response.data['ok'])

    def test_doctor_reads_any_patient(self):
        client = self.authenticate(self.doctor_user)
        response = client.get(reverse('medication_history', args=[self.patient1.id]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['statistics']['totalPrescriptions'], 3)
        self.assertEqual(response.data['statistics']['uniqueMedications'], 2)
        self.assertEqual(response.data['pagination']['total'], 2)

    def test_history_query_parameters(self):
        client = self.authenticate(self.patient1)
        response = client.get(reverse('medication_history', args=[self.patient1.id]),
                              {'medicationName': 'amox', 'page': 1, 'limit': 10})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([m['medicationName'] for m in response.data['history']], ['Amoxicillin'])
        self.assertEqual(response.data['pagination']['limit'], 10)

    def test_history_rejects_inverted_date_range(self):
        client = self.authenticate(self.patient1)
        response = client.get(reverse('medication_history', args=[self.patient1.id]),
                              {'startDate': '2024-05-01', 'endDate': '2024-04-01'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['ok'])

    def test_interactions_report_duplicate(self):
        client = self.authenticate(self.patient1)
        response = client.get(reverse('medication_interactions', args=[self.patient1.id]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['medicationCount'], 3)
        self.assertEqual([w['type'] for w in response.data['warnings']], ['DUPLICATE'])
        self.assertEqual(response.data['warnings'][0]['medications'], ['aspirin'])

    # -- uploads ------------------------------------------------------------

    def test_doctor_uploads_visit_attachments(self):
        client = self.authenticate(self.doctor_user)
        files = [
            SimpleUploadedFile('scan.png', PNG, content_type='image/png'),
            SimpleUploadedFile('report.pdf', PDF, content_type='application/pdf'),
        ]
        response = client.post(reverse('visit_attachments', args=[self.visit1.id]), {'files': files},
                               format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        paths = [a['path'] for a in response.data['attachments']]
        self.assertEqual(len(paths), 2)
        for path, ext in zip(paths, ('.png', '.pdf')):
            self.assertRegex(
                path,
                r'^uploads/visits/\d{4}/\d{2}/patient_12345678901/'
                r'visit_\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2}-\d{3}Z_[0-9a-z]{8}' + re.escape(ext) + '$',
            )
            self.assertTrue(os.path.exists(os.path.join(self.media_root, path)))
        self.assertEqual(response.data['attachments'][0]['originalName'], 'scan.png')
        self.assertEqual(self.visit1.attachments.count(), 2)

    def test_visit_attachment_rejects_unsupported_type(self):
        client = self.authenticate(self.doctor_user)
        files = [
            SimpleUploadedFile('scan.png', PNG, content_type='image/png'),
            SimpleUploadedFile('notes.txt', b'hello', content_type='text/plain'),
        ]
        response = client.post(reverse('visit_attachments', args=[self.visit1.id]), {'files': files},
                               format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['success'])
        self.assertEqual(self.visit1.attachments.count(), 0)

    def test_visit_attachment_requires_files_and_visit(self):
        client = self.authenticate(self.doctor_user)
        response = client.post(reverse('visit_attachments', args=[self.visit1.id]), {}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = client.post(reverse('visit_attachments', args=[999999]),
                               {'files': [SimpleUploadedFile('a.png', PNG, content_type='image/png')]},
                               format='multipart')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_patient_cannot_upload_visit_attachments(self):
        client = self.authenticate(self.patient1)
        response = client.post(reverse('visit_attachments', args=[self.visit1.id]),
                               {'files': [SimpleUploadedFile('a.png', PNG, content_type='image/png')]},
                               format='multipart')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_ecg_upload(self):
        client = self.authenticate(self.doctor_user)
        response = client.post(reverse('ecg_upload'), {
            'patientId': '12345678901',
            'ecgImage': SimpleUploadedFile('trace.png', PNG, content_type='image/png'),
        }, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        path = response.data['ecg']['path']
        self.assertRegex(path, r'^uploads/ecgs/\d{4}/\d{2}/patient_12345678901/ecg_.+_[0-9a-z]{8}\.png$')
        self.assertTrue(os.path.exists(os.path.join(self.media_root, path)))
        self.assertEqual(EcgRecord.objects.get().patient, self.patient1)

    def test_ecg_upload_rejects_pdf_and_unknown_patient(self):
        client = self.authenticate(self.doctor_user)
        response = client.post(reverse('ecg_upload'), {
            'patientId': '12345678901',
            'ecgImage': SimpleUploadedFile('trace.pdf', PDF, content_type='application/pdf'),
        }, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = client.post(reverse('ecg_upload'), {
            'patientId': '00000000000',
            'ecgImage': SimpleUploadedFile('trace.png', PNG, content_type='image/png'),
        }, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class DoctorRequestAPITests(MediaRootMixin, APITestCase):
    def setUp(self) -> None:
        self.media_root = self.use_temp_media_root()
        self.admin_user = User.objects.create_user(username='admin1', password='P@ssw0rd1', role='admin')

    def submit(self, national_id='19876543210'):
        return APIClient().post(reverse('submit_doctor_request'), {
            'firstName': 'Rana',
            'lastName': 'Saleh',
            'email': 'rana@example.com',
            'nationalId': national_id,
            'specialization': 'Neurology',
            'medicalCertificate': SimpleUploadedFile('cert.pdf', PDF, content_type='application/pdf'),
            'profilePhoto': SimpleUploadedFile('me.png', PNG, content_type='image/png'),
        }, format='multipart')

    def test_submit_stores_documents_in_pending_directory(self):
        response = self.submit()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        req = response.data['request']
        self.assertRegex(req['requestId'], r'^temp_\d+_[0-9a-z]{8}$')
        pending = f"uploads/doctor-requests/pending/request_{req['requestId']}/"
        self.assertRegex(req['documents']['medicalCertificate'], '^' + re.escape(pending) + r'medicalCertificate_\d+\.pdf$')
        self.assertRegex(req['documents']['profilePhoto'], '^' + re.escape(pending) + r'profilePhoto_\d+\.png$')
        self.assertIsNone(req['documents']['licenseDocument'])
        self.assertTrue(os.path.exists(os.path.join(self.media_root, req['documents']['profilePhoto'])))

    def test_submit_validates_national_id(self):
        response = self.submit(national_id='abc')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(DoctorRequest.objects.exists())

    def test_approve_moves_documents_and_creates_doctor(self):
        req_id = self.submit().data['request']['id']
        client = self.authenticate(self.admin_user)
        response = client.post(reverse('approve_doctor_request', args=[req_id]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        approved = 'uploads/doctor-requests/approved/doctor_19876543210/'
        documents = response.data['request']['documents']
        self.assertTrue(documents['medicalCertificate'].startswith(approved))
        self.assertTrue(documents['profilePhoto'].startswith(approved))
        for path in (documents['medicalCertificate'], documents['profilePhoto']):
            self.assertTrue(os.path.exists(os.path.join(self.media_root, path)))
        self.assertFalse(os.path.exists(os.path.join(self.media_root, 'uploads/doctor-requests/pending',
                                                     f"request_{response.data['request']['requestId']}")))

        doctor = User.objects.get(username='dr19876543210')
        self.assertEqual(doctor.role, 'doctor')
        self.assertEqual(doctor.doctor_profile.specialization, 'Neurology')
        login = APIClient().post(reverse('login_view'), {
            'username': 'dr19876543210', 'password': response.data['initialPassword'],
        }, format='json')
        self.assertEqual(login.status_code, status.HTTP_200_OK)

        again = client.post(reverse('approve_doctor_request', args=[req_id]))
        self.assertEqual(again.status_code, status.HTTP_400_BAD_REQUEST)

    def test_approve_without_pending_documents_is_rejected(self):
        req = self.submit().data['request']
        shutil.rmtree(os.path.join(self.media_root, 'uploads/doctor-requests/pending', f"request_{req['requestId']}"))
        response = self.authenticate(self.admin_user).post(reverse('approve_doctor_request', args=[req['id']]))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['success'])
        self.assertEqual(DoctorRequest.objects.get(id=req['id']).status, DoctorRequest.STATUS_PENDING)
        self.assertFalse(User.objects.filter(username='dr19876543210').exists())

    def test_reject(self):
        req_id = self.submit().data['request']['id']
        client = self.authenticate(self.admin_user)
        response = client.post(reverse('reject_doctor_request', args=[req_id]), {'reason': 'incomplete'},
                               format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['request']['status'], DoctorRequest.STATUS_REJECTED)
        self.assertEqual(DoctorRequest.objects.get(id=req_id).rejection_reason, 'incomplete')
        self.assertFalse(User.objects.filter(username='dr19876543210').exists())

    def test_only_admins_review_requests(self):
        req_id = self.submit().data['request']['id']
        patient = User.objects.create_user(username='p1', password='P@ssw0rd1', role='patient')
        response = self.authenticate(patient).post(reverse('approve_doctor_request', args=[req_id]))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.authenticate(self.admin_user).post(reverse('approve_doctor_request', args=[999999]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def authenticate(self, user: User) -> APIClient:
        client = APIClient()
        client.force_authenticate(user=user)
        return client


def test_healthz(client, db):
    response = client.get(reverse('healthz'))
    assert response.status_code == 200
    assert response.json()['ok'] is True
