from datetime import timedelta

from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APITestCase

from apps.accounts.models import Department, UserRole
from apps.audit.models import AuditLog
from apps.clients.models import Client
from apps.orders.models import Order, OrderStatus
from apps.production import design, engine
from apps.production.models import DesignStatus, JobPhase, JobStatus, JobType, PhaseKind, PhaseStatus

User = get_user_model()


def make_user(username, department, role):
    return User.objects.create_user(
        username=username,
        email=f"{username}@fazztrack.com",
        password="secret123",
        department=department,
        role=role,
    )


class PhaseEngineTests(APITestCase):
    def setUp(self):
        self.admin = make_user("admin", Department.ADMIN, UserRole.ADMIN)
        self.sales = make_user("sales", Department.SALES_MANAGER, UserRole.SALES_MANAGER)
        self.designer = make_user("designer", Department.DESIGNER, UserRole.DESIGNER)
        self.printer = make_user("print", Department.PRODUCTION_STAFF, UserRole.PRINT)
        self.qc = make_user("qc", Department.PRODUCTION_STAFF, UserRole.QC)
        self.iron = make_user("iron", Department.PRODUCTION_STAFF, UserRole.IRON_PACKING)
        self.client_record = Client.objects.create(name="ABC Corporation", phone="+60123456789")
        self.order = Order.objects.create(client=self.client_record, job_name="Event Shirts", created_by=self.admin)
        self.job = engine.create_job_with_phases(order=self.order, created_by=self.admin, job_type=JobType.PRINT)
        self.phases = list(self.job.phases.order_by("order"))

    def advance(self, count, user=None):
        user = user or self.admin
        for phase in self.phases[:count]:
            engine.start_phase(self.job, phase.id, user)
            engine.end_phase(self.job, phase.id, user)

    def test_job_is_created_with_default_pipeline(self):
        self.assertEqual(self.job.reference, "JOB-001")
        self.assertEqual(self.job.qr_code, "QR-JOB-001")
        self.assertEqual(
            [phase.name for phase in self.phases],
            ["PRINT", "PRESS", "CUT", "SEW", "QUALITY CHECK (QC)", "IRON/PACKING"],
        )
        self.assertTrue(all(phase.status == PhaseStatus.PENDING for phase in self.phases))
        self.assertEqual(self.job.status, JobStatus.PENDING)
        self.assertEqual(engine.progress(self.job), 0)

    def test_default_codes_skip_a_custom_qr_code_already_in_use(self):
        custom = engine.create_job_with_phases(
            order=self.order, created_by=self.admin, job_type=JobType.PRINT, qr_code="QR-JOB-003"
        )
        self.assertEqual(custom.reference, "JOB-002")

        following = engine.create_job_with_phases(order=self.order, created_by=self.admin, job_type=JobType.PRINT)
        self.assertEqual(following.reference, "JOB-004")
        self.assertEqual(following.qr_code, "QR-JOB-004")

    def test_design_job_has_single_design_phase(self):
        design_job = engine.create_job_with_phases(order=self.order, created_by=self.admin, job_type=JobType.DESIGN)
        phases = list(design_job.phases.all())
        self.assertEqual(len(phases), 1)
        self.assertEqual(phases[0].name, "DESIGN")
        self.assertEqual(phases[0].kind, PhaseKind.DESIGN)

    def test_progress_and_current_phase_mid_production(self):
        self.advance(2)
        engine.start_phase(self.job, self.phases[2].id, self.admin)

        self.job.refresh_from_db()
        self.assertEqual(engine.progress(self.job), 33)
        self.assertEqual(engine.resolve_current_phase(self.job).pk, self.phases[2].pk)
        self.assertEqual(self.job.status, JobStatus.IN_PROGRESS)
        self.assertIsNotNone(self.job.started_at)

    def test_ending_last_phase_completes_job(self):
        self.advance(len(self.phases))

        self.job.refresh_from_db()
        self.assertEqual(self.job.status, JobStatus.COMPLETED)
        self.assertIsNone(self.job.current_phase_id)
        self.assertIsNotNone(self.job.completed_at)
        self.assertEqual(engine.progress(self.job), 100)
        self.assertIsNone(engine.resolve_current_phase(self.job))

    def test_qc_user_is_limited_to_quality_check_unless_assigned(self):
        print_phase, qc_phase = self.phases[0], self.phases[4]
        self.assertTrue(engine.can_work_on_phase(self.qc, qc_phase))
        self.assertFalse(engine.can_work_on_phase(self.qc, print_phase))

        print_phase.assigned_to = self.qc
        print_phase.save(update_fields=["assigned_to"])
        self.assertTrue(engine.can_work_on_phase(self.qc, print_phase))

    def test_override_departments_can_work_on_any_phase(self):
        for user in (self.admin, self.sales):
            self.assertTrue(all(engine.can_work_on_phase(user, phase) for phase in self.phases))

    def test_designer_is_limited_to_design_phases(self):
        design_job = engine.create_job_with_phases(order=self.order, created_by=self.admin, job_type=JobType.DESIGN)
        self.assertTrue(engine.can_work_on_phase(self.designer, design_job.phases.get()))
        self.assertFalse(engine.can_work_on_phase(self.designer, self.phases[0]))

    def test_phases_without_kind_use_name_matching(self):
        legacy = JobPhase.objects.create(job=self.job, name="Iron & Pack", kind="", order=7)
        self.assertTrue(engine.can_work_on_phase(self.iron, legacy))
        self.assertFalse(engine.can_work_on_phase(self.printer, legacy))

        quality = JobPhase.objects.create(job=self.job, name="Final Quality Review", kind="", order=8)
        self.assertTrue(engine.can_work_on_phase(self.qc, quality))

    def test_cannot_start_out_of_order(self):
        with self.assertRaises(engine.IllegalPhaseTransition):
            engine.start_phase(self.job, self.phases[1].id, self.admin)

        self.phases[1].refresh_from_db()
        self.assertEqual(self.phases[1].status, PhaseStatus.PENDING)
        self.assertIsNone(self.phases[1].started_at)

    def test_only_one_phase_in_progress(self):
        engine.start_phase(self.job, self.phases[0].id, self.admin)
        with self.assertRaises(engine.IllegalPhaseTransition):
            engine.start_phase(self.job, self.phases[1].id, self.admin)

    def test_repeated_actions_are_rejected(self):
        engine.start_phase(self.job, self.phases[0].id, self.printer)
        with self.assertRaises(engine.IllegalPhaseTransition):
            engine.start_phase(self.job, self.phases[0].id, self.printer)

        engine.end_phase(self.job, self.phases[0].id, self.printer)
        with self.assertRaises(engine.IllegalPhaseTransition):
            engine.end_phase(self.job, self.phases[0].id, self.printer)

        self.phases[0].refresh_from_db()
        self.assertEqual(self.phases[0].status, PhaseStatus.COMPLETED)

    def test_end_requires_phase_in_progress(self):
        with self.assertRaises(engine.IllegalPhaseTransition):
            engine.end_phase(self.job, self.phases[0].id, self.admin)

    def test_unauthorized_start_leaves_phase_pending(self):
        with self.assertRaises(engine.PhaseActionDenied):
            engine.start_phase(self.job, self.phases[0].id, self.qc)

        self.phases[0].refresh_from_db()
        self.job.refresh_from_db()
        self.assertEqual(self.phases[0].status, PhaseStatus.PENDING)
        self.assertIsNone(self.phases[0].assigned_to_id)
        self.assertEqual(self.job.status, JobStatus.PENDING)

    def test_start_assigns_phase_to_first_worker(self):
        engine.start_phase(self.job, self.phases[0].id, self.printer)
        self.phases[0].refresh_from_db()
        self.assertEqual(self.phases[0].assigned_to_id, self.printer.id)
        self.assertIsNotNone(self.phases[0].started_at)

    def test_on_hold_job_cannot_start_phases(self):
        self.job.status = JobStatus.ON_HOLD
        self.job.save(update_fields=["status"])
        with self.assertRaises(engine.IllegalPhaseTransition):
            engine.start_phase(self.job, self.phases[0].id, self.admin)

    def test_cancelled_or_held_job_cannot_end_phases(self):
        engine.start_phase(self.job, self.phases[0].id, self.admin)
        for blocked in (JobStatus.CANCELLED, JobStatus.ON_HOLD):
            self.job.status = blocked
            self.job.save(update_fields=["status"])
            with self.assertRaises(engine.IllegalPhaseTransition):
                engine.end_phase(self.job, self.phases[0].id, self.admin)

            self.job.refresh_from_db()
            self.phases[0].refresh_from_db()
            self.assertEqual(self.job.status, blocked)
            self.assertEqual(self.phases[0].status, PhaseStatus.IN_PROGRESS)
        self.order.refresh_from_db()
        self.assertNotEqual(self.order.status, OrderStatus.READY_FOR_DELIVERY)

    def test_duration_is_rounded_to_minutes(self):
        engine.start_phase(self.job, self.phases[0].id, self.admin)
        JobPhase.objects.filter(pk=self.phases[0].pk).update(
            started_at=timezone.now() - timedelta(minutes=12, seconds=40)
        )
        engine.end_phase(self.job, self.phases[0].id, self.admin)

        self.phases[0].refresh_from_db()
        self.assertEqual(self.phases[0].duration_minutes, 13)

    def test_duration_is_zero_without_start_time(self):
        engine.start_phase(self.job, self.phases[0].id, self.admin)
        JobPhase.objects.filter(pk=self.phases[0].pk).update(started_at=None)
        engine.end_phase(self.job, self.phases[0].id, self.admin)

        self.phases[0].refresh_from_db()
        self.assertEqual(self.phases[0].duration_minutes, 0)

    def test_unknown_phase_raises_not_found(self):
        with self.assertRaises(engine.PhaseNotFound):
            engine.start_phase(self.job, "not-a-phase", self.admin)

    def test_skip_needs_permission_and_completes_job(self):
        with self.assertRaises(engine.PhaseActionDenied):
            engine.skip_phase(self.job, self.phases[0].id, self.printer)

        for phase in self.phases:
            engine.skip_phase(self.job, phase.id, self.admin, "Customer supplied finished goods")

        self.job.refresh_from_db()
        self.assertEqual(self.job.status, JobStatus.COMPLETED)
        self.assertEqual(engine.progress(self.job), 100)
        self.assertEqual(self.job.phases.filter(status=PhaseStatus.SKIPPED).count(), len(self.phases))

    def test_skipped_phase_counts_as_done_for_the_next_start(self):
        engine.skip_phase(self.job, self.phases[0].id, self.admin)
        engine.start_phase(self.job, self.phases[1].id, self.admin)

        self.job.refresh_from_db()
        self.assertEqual(engine.progress(self.job), 17)
        self.assertEqual(self.job.current_phase_id, self.phases[1].pk)

    def test_find_job_by_code_uses_qr_then_reference(self):
        self.assertEqual(engine.find_job_by_code("QR-JOB-001").pk, self.job.pk)
        self.assertEqual(engine.find_job_by_code("job-001").pk, self.job.pk)
        with self.assertRaises(engine.JobNotFound):
            engine.find_job_by_code("QR-UNKNOWN")

    def test_phase_actions_are_audited(self):
        engine.start_phase(self.job, self.phases[0].id, self.printer)
        engine.end_phase(self.job, self.phases[0].id, self.printer)
        actions = set(AuditLog.objects.filter(entity_id=str(self.job.id)).values_list("action", flat=True))
        self.assertIn("production.phase.start", actions)
        self.assertIn("production.phase.end", actions)


class OrderStatusSyncTests(APITestCase):
    def setUp(self):
        self.admin = make_user("admin", Department.ADMIN, UserRole.ADMIN)
        client = Client.objects.create(name="XYZ Solutions", phone="+60198765432")
        self.order = Order.objects.create(client=client, job_name="Team Hoodies", created_by=self.admin)

    def run_job(self, job, stop_before=None):
        phases = list(job.phases.order_by("order"))
        for index, phase in enumerate(phases):
            if stop_before is not None and index == stop_before:
                engine.start_phase(job, phase.id, self.admin)
                return
            engine.start_phase(job, phase.id, self.admin)
            engine.end_phase(job, phase.id, self.admin)

    def test_design_job_moves_order_through_design_statuses(self):
        job = engine.create_job_with_phases(order=self.order, created_by=self.admin, job_type=JobType.DESIGN)
        phase = job.phases.get()

        engine.start_phase(job, phase.id, self.admin)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, OrderStatus.IN_DESIGN)

        engine.end_phase(job, phase.id, self.admin)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, OrderStatus.DESIGN_COMPLETED)

    def test_production_job_moves_order_to_qc_and_ready(self):
        job = engine.create_job_with_phases(order=self.order, created_by=self.admin, job_type=JobType.PRINT)

        self.run_job(job, stop_before=1)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, OrderStatus.IN_PRODUCTION)

        job.refresh_from_db()
        engine.end_phase(job, job.current_phase_id, self.admin)
        for phase in job.phases.filter(order__in=[3, 4]).order_by("order"):
            engine.start_phase(job, phase.id, self.admin)
            engine.end_phase(job, phase.id, self.admin)
        qc_phase = job.phases.get(kind=PhaseKind.QC)
        engine.start_phase(job, qc_phase.id, self.admin)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, OrderStatus.IN_QC)

        engine.end_phase(job, qc_phase.id, self.admin)
        last = job.phases.get(kind=PhaseKind.IRON_PACKING)
        engine.start_phase(job, last.id, self.admin)
        engine.end_phase(job, last.id, self.admin)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, OrderStatus.READY_FOR_DELIVERY)

    def test_order_never_moves_backwards(self):
        self.order.status = OrderStatus.IN_QC
        self.order.save(update_fields=["status"])
        job = engine.create_job_with_phases(order=self.order, created_by=self.admin, job_type=JobType.PRINT)

        engine.start_phase(job, job.phases.get(order=1).id, self.admin)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, OrderStatus.IN_QC)

    def test_cancelled_order_is_left_untouched(self):
        self.order.status = OrderStatus.CANCELLED
        self.order.save(update_fields=["status"])
        job = engine.create_job_with_phases(order=self.order, created_by=self.admin, job_type=JobType.PRINT)

        self.run_job(job)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, OrderStatus.CANCELLED)

    def test_ready_waits_for_every_production_job(self):
        first = engine.create_job_with_phases(order=self.order, created_by=self.admin, job_type=JobType.PRINT)
        engine.create_job_with_phases(order=self.order, created_by=self.admin, job_type=JobType.SEW)

        self.run_job(first)
        self.order.refresh_from_db()
        self.assertNotEqual(self.order.status, OrderStatus.READY_FOR_DELIVERY)


class JobApiTests(APITestCase):
    def setUp(self):
        self.admin = make_user("admin", Department.ADMIN, UserRole.ADMIN)
        self.sales = make_user("sales", Department.SALES_MANAGER, UserRole.SALES_MANAGER)
        self.printer = make_user("print", Department.PRODUCTION_STAFF, UserRole.PRINT)
        self.qc = make_user("qc", Department.PRODUCTION_STAFF, UserRole.QC)
        client = Client.objects.create(name="Tech Startup Inc", phone="+60187654321")
        self.order = Order.objects.create(client=client, job_name="Launch Jerseys", created_by=self.admin)
        self.job = engine.create_job_with_phases(order=self.order, created_by=self.admin, job_type=JobType.PRINT)
        self.first_phase = self.job.phases.get(order=1)

    def auth_as(self, username, password="secret123"):
        response = self.client.post(
            "/api/v1/auth/token/",
            {"username": username, "password": password},
            format="json",
        )
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")

    def phase_url(self, phase, action):
        return f"/api/v1/jobs/{self.job.id}/phases/{phase.id}/{action}/"

    def test_scan_returns_job_snapshot(self):
        self.auth_as("print")
        response = self.client.post("/api/v1/jobs/scan/", {"code": "QR-JOB-001"}, format="json")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["scan"]["job_id"], str(self.job.id))
        self.assertEqual(response.data["scan"]["client_name"], "Tech Startup Inc")
        self.assertEqual(response.data["scan"]["job_name"], "Launch Jerseys")
        self.assertEqual(response.data["job"]["progress"], 0)
        self.assertEqual(response.data["job"]["current_phase"], str(self.first_phase.id))
        can_act = {phase["name"]: phase["can_act"] for phase in response.data["job"]["phases"]}
        self.assertTrue(can_act["PRINT"])
        self.assertFalse(can_act["QUALITY CHECK (QC)"])

    def test_scan_unknown_code_is_not_found(self):
        self.auth_as("print")
        response = self.client.post("/api/v1/jobs/scan/", {"code": "QR-NOPE"}, format="json")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data["code"], "not_found")

    def test_start_and_end_phase_through_api(self):
        self.auth_as("print")
        started = self.client.post(self.phase_url(self.first_phase, "start"), {}, format="json")
        self.assertEqual(started.status_code, 200)
        self.assertEqual(started.data["status"], JobStatus.IN_PROGRESS)
        self.assertEqual(started.data["phases"][0]["status"], PhaseStatus.IN_PROGRESS)

        retry = self.client.post(self.phase_url(self.first_phase, "start"), {}, format="json")
        self.assertEqual(retry.status_code, 400)
        self.assertEqual(retry.data["code"], "invalid_state")

        ended = self.client.post(self.phase_url(self.first_phase, "end"), {}, format="json")
        self.assertEqual(ended.status_code, 200)
        self.assertEqual(ended.data["progress"], 17)

    def test_wrong_role_is_forbidden(self):
        self.auth_as("qc")
        response = self.client.post(self.phase_url(self.first_phase, "start"), {}, format="json")
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data["code"], "forbidden")

    def test_skip_requires_skip_permission(self):
        self.auth_as("print")
        denied = self.client.post(self.phase_url(self.first_phase, "skip"), {"reason": "n/a"}, format="json")
        self.assertEqual(denied.status_code, 403)

        self.auth_as("admin")
        skipped = self.client.post(self.phase_url(self.first_phase, "skip"), {"reason": "Pre-printed"}, format="json")
        self.assertEqual(skipped.status_code, 200)
        self.assertEqual(skipped.data["phases"][0]["status"], PhaseStatus.SKIPPED)
        self.assertEqual(skipped.data["phases"][0]["notes"], "Pre-printed")

    def test_create_job_with_custom_phases(self):
        self.auth_as("sales")
        response = self.client.post(
            "/api/v1/jobs/",
            {"order": str(self.order.id), "job_type": "print", "phase_names": ["Print", "Quality Check"]},
            format="json",
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual([phase["name"] for phase in response.data["phases"]], ["Print", "Quality Check"])
        self.assertEqual([phase["kind"] for phase in response.data["phases"]], ["print", "qc"])

    def test_production_staff_cannot_create_jobs(self):
        self.auth_as("print")
        response = self.client.post("/api/v1/jobs/", {"order": str(self.order.id)}, format="json")
        self.assertEqual(response.status_code, 403)

    def test_edit_job_is_audited(self):
        self.auth_as("sales")
        response = self.client.patch(
            f"/api/v1/jobs/{self.job.id}/",
            {"priority": "high", "notes": "Rush for launch"},
            format="json",
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["priority"], "high")
        self.assertTrue(
            AuditLog.objects.filter(action="production.job.update", entity_id=str(self.job.id)).exists()
        )

    def test_list_filters(self):
        self.auth_as("print")
        by_client = self.client.get("/api/v1/jobs/", {"q": "tech startup"})
        self.assertEqual(by_client.status_code, 200)
        self.assertEqual(by_client.data["count"], 1)

        none = self.client.get("/api/v1/jobs/?status=completed")
        self.assertEqual(none.data["count"], 0)

        by_order = self.client.get(f"/api/v1/jobs/?order={self.order.id}")
        self.assertEqual(by_order.data["count"], 1)

    def test_custom_and_default_qr_codes_do_not_collide(self):
        self.auth_as("sales")
        custom = self.client.post(
            "/api/v1/jobs/", {"order": str(self.order.id), "qr_code": "QR-JOB-003"}, format="json"
        )
        self.assertEqual(custom.status_code, 201)
        self.assertEqual(custom.data["reference"], "JOB-002")

        default = self.client.post("/api/v1/jobs/", {"order": str(self.order.id)}, format="json")
        self.assertEqual(default.status_code, 201)
        self.assertEqual(default.data["qr_code"], "QR-JOB-004")

    def test_edit_rejects_qr_code_of_another_job_after_trimming(self):
        other = engine.create_job_with_phases(order=self.order, created_by=self.admin, job_type=JobType.SEW)
        self.auth_as("sales")
        url = f"/api/v1/jobs/{self.job.id}/"

        taken = self.client.patch(url, {"qr_code": f"  {other.qr_code}  "}, format="json")
        self.assertEqual(taken.status_code, 400)
        self.assertIn("qr_code", taken.data["fields"])

        unchanged = self.client.patch(url, {"qr_code": f" {self.job.qr_code} "}, format="json")
        self.assertEqual(unchanged.status_code, 200)
        self.assertEqual(unchanged.data["qr_code"], "QR-JOB-001")


class DesignReviewTests(APITestCase):
    def setUp(self):
        self.admin = make_user("admin", Department.ADMIN, UserRole.ADMIN)
        self.designer = make_user("designer", Department.DESIGNER, UserRole.DESIGNER)
        make_user("print", Department.PRODUCTION_STAFF, UserRole.PRINT)
        client = Client.objects.create(name="ABC Corporation", phone="+60123456789")
        self.order = Order.objects.create(client=client, job_name="Event Shirts", created_by=self.admin)
        self.job = engine.create_job_with_phases(order=self.order, created_by=self.admin, job_type=JobType.DESIGN)

    def auth_as(self, username, password="secret123"):
        response = self.client.post(
            "/api/v1/auth/token/",
            {"username": username, "password": password},
            format="json",
        )
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")

    def submit(self, link="https://drive.example.com/event-shirts.ai"):
        return self.client.post(
            f"/api/v1/jobs/{self.job.id}/design/submit/", {"download_link": link, "note": "Front and back"}, format="json"
        )

    def set_status(self, value, feedback=""):
        return self.client.post(
            f"/api/v1/jobs/{self.job.id}/design/status/", {"status": value, "feedback": feedback}, format="json"
        )

    def test_new_design_job_waits_for_work(self):
        self.assertEqual(self.job.design_status, DesignStatus.PENDING)
        self.assertIsNone(self.job.submitted_at)

    def test_submit_moves_to_review_and_stores_link(self):
        self.auth_as("designer")
        response = self.submit()

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["design_status"], DesignStatus.REVIEW)
        self.assertIsNotNone(response.data["submitted_at"])
        self.order.refresh_from_db()
        self.assertEqual(self.order.download_link, "https://drive.example.com/event-shirts.ai")
        self.assertTrue(AuditLog.objects.filter(action="production.design.submit", entity_id=str(self.job.id)).exists())

    def test_approval_finalizes_the_job(self):
        self.auth_as("designer")
        self.submit()
        response = self.set_status("approved")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["design_status"], DesignStatus.APPROVED)
        self.assertIsNotNone(response.data["approved_at"])
        self.assertTrue(response.data["is_finalized"])

        again = self.set_status("in_progress")
        self.assertEqual(again.status_code, 400)
        self.assertEqual(again.data["code"], "invalid_state")

    def test_rejection_requires_feedback_and_allows_rework(self):
        self.auth_as("designer")
        self.submit()

        missing = self.set_status("rejected")
        self.assertEqual(missing.status_code, 400)
        self.assertEqual(missing.data["code"], "invalid_state")

        rejected = self.set_status("rejected", "Logo is too small")
        self.assertEqual(rejected.status_code, 200)
        self.assertEqual(rejected.data["feedback"], "Logo is too small")
        self.assertFalse(rejected.data["is_finalized"])

        rework = self.set_status("in_progress")
        self.assertEqual(rework.data["design_status"], DesignStatus.IN_PROGRESS)

    def test_pending_design_cannot_be_approved_directly(self):
        self.auth_as("designer")
        response = self.set_status("approved")
        self.assertEqual(response.status_code, 400)
        self.job.refresh_from_db()
        self.assertEqual(self.job.design_status, DesignStatus.PENDING)

    def test_production_jobs_have_no_design_review(self):
        print_job = engine.create_job_with_phases(order=self.order, created_by=self.admin, job_type=JobType.PRINT)
        with self.assertRaises(engine.IllegalPhaseTransition):
            design.set_design_status(print_job, DesignStatus.IN_PROGRESS, user=self.designer)

    def test_production_staff_cannot_review_designs(self):
        self.auth_as("print")
        self.assertEqual(self.submit().status_code, 403)
        self.assertEqual(self.set_status("in_progress").status_code, 403)
