"""
Service operations called directly with a principal and a session; every
outcome is checked through its ActionResult.
"""

from datetime import date, datetime, timedelta

from school_backend.interface.passwords import verify_password
from school_backend.interface.results import FORM_ERROR_KEY, ResultKind
from school_backend.model import Attendance, AttendanceStatus, Event, EventResource, Grade, Message, Notification, Parent, Registration, ScheduleItem, SchoolClass, Student, Teacher, User
from school_backend.model.base import utcnow
from school_backend.model.event import RegistrationStatus
from school_backend.services import attendance, classes, event_planning, events, grades, messages, parents, students, teachers, users


def student_payload(school, **overrides):
    payload = {
        "first_name": "Zoe",
        "last_name": "New",
        "admission_number": "ADM-100",
        "date_of_birth": "2011-03-04",
        "gender": "F",
        "enrollment_date": "2024-01-08",
        "section": "X",
        "class_id": school.class_x,
        "parent_id": school.parent_p,
    }
    payload.update(overrides)
    return payload


def event_payload(**overrides):
    payload = {
        "title": "Science fair",
        "description": "Projects from every class",
        "date": (utcnow() + timedelta(days=10)).isoformat(),
        "start_time": "09:00",
        "end_time": "12:00",
        "location": "Main hall",
        "category": "academic",
    }
    payload.update(overrides)
    return payload


class TestAuthenticationBoundary:
    def test_anonymous_caller_is_unauthenticated(self, db, school):
        result = classes.get_classes(None, {}, db)
        assert result.kind == ResultKind.UNAUTHENTICATED
        assert result.errors == {FORM_ERROR_KEY: ["You must be logged in"]}


class TestClasses:
    def test_class_without_teacher_then_assigned(self, db, school, principals):
        created = classes.add_class(principals.admin, {"name": "O LEVEL", "grade": " o  level ", "section": "A"}, db)
        assert created.success
        assert created.http_status == 201
        assert created.data.teacher_id is None
        assert created.data.grade == "O LEVEL"

        updated = classes.update_class(principals.admin, created.data.id, {"teacher_id": school.teacher_b}, db)
        assert updated.success

        fetched = classes.get_class_by_id(principals.admin, created.data.id, db)
        assert fetched.data.teacher.id == school.teacher_b
        assert fetched.data.teacher.user.name == "Bob Teacher"

    def test_duplicate_class_name_conflicts(self, db, school, principals):
        result = classes.add_class(principals.admin, {"name": "Form 1X", "grade": "10", "section": "Z"}, db)
        assert result.kind == ResultKind.CONFLICT
        assert "name" in result.errors
        assert db.query(SchoolClass).filter(SchoolClass.name == "Form 1X").count() == 1

    def test_unknown_teacher_is_not_found(self, db, school, principals):
        result = classes.add_class(principals.admin, {"name": "Form 2", "grade": "11", "section": "A", "teacher_id": "missing"}, db)
        assert result.kind == ResultKind.NOT_FOUND

    def test_delete_class_with_students_is_refused(self, db, school, principals):
        result = classes.delete_class(principals.admin, school.class_x, db)
        assert result.kind == ResultKind.BUSINESS_RULE
        assert result.http_status == 400

        db.expire_all()
        assert db.get(SchoolClass, school.class_x) is not None
        assert db.query(Student).filter(Student.class_id == school.class_x).count() == 1

    def test_teacher_cannot_add_class(self, db, school, principals):
        result = classes.add_class(principals.teacher_a, {"name": "Form 3", "grade": "12", "section": "A"}, db)
        assert result.kind == ResultKind.FORBIDDEN

    def test_parent_sees_only_own_children_in_roster(self, db, school, principals):
        db.add(Student(
            first_name="Other", last_name="Child", admission_number="ADM-003",
            date_of_birth=date(2010, 2, 2), gender="M", enrollment_date=date(2023, 1, 10), section="X",
            class_id=school.class_x, parent_id=school.parent_q,
        ))
        db.commit()

        result = classes.get_class_by_id(principals.parent_p, school.class_x, db)
        assert [s.id for s in result.data.students] == [school.student_x]

        result = classes.get_class_by_id(principals.admin, school.class_x, db)
        assert len(result.data.students) == 2


class TestStudents:
    def test_register_student_with_account(self, db, school, principals):
        result = students.register_student(
            principals.admin, student_payload(school, email="Zoe@School.org", password="secret99"), db
        )
        assert result.success
        assert result.data.user.email == "zoe@school.org"
        assert result.data.user.role == "STUDENT"

    def test_duplicate_admission_number_conflicts(self, db, school, principals):
        result = students.register_student(principals.admin, student_payload(school, admission_number="ADM-001"), db)
        assert result.kind == ResultKind.CONFLICT
        assert list(result.errors) == ["admission_number"]
        assert db.query(Student).filter(Student.admission_number == "ADM-001").count() == 1

    def test_duplicate_email_creates_nothing(self, db, school, principals):
        result = students.register_student(
            principals.admin, student_payload(school, email="alice@school.org", password="secret99"), db
        )
        assert result.kind == ResultKind.CONFLICT
        assert "email" in result.errors
        assert db.query(Student).filter(Student.admission_number == "ADM-100").count() == 0

    def test_missing_fields_are_validation_errors(self, db, school, principals):
        result = students.register_student(principals.admin, {"first_name": "Zoe"}, db)
        assert result.kind == ResultKind.VALIDATION
        assert "last_name" in result.errors
        assert "admission_number" in result.errors

    def test_parent_filter_is_pinned(self, db, school, principals):
        result = students.get_students(principals.parent_p, {"parent_id": school.parent_q}, db)
        assert [s.id for s in result.data] == [school.student_x]
        assert result.total == 1

    def test_delete_student_removes_login(self, db, school, principals):
        result = students.delete_student(principals.admin, school.student_y, db)
        assert result.success

        db.expire_all()
        assert db.get(Student, school.student_y) is None
        assert db.get(User, school.student_y_user) is None


class TestTeachers:
    def test_duplicate_email_conflicts(self, db, school, principals):
        result = teachers.register_teacher(principals.admin, {
            "name": "Another Alice", "email": "ALICE@school.org", "password": "secret99",
            "department": "Math", "qualification": "PhD",
        }, db)
        assert result.kind == ResultKind.CONFLICT
        assert result.errors == {"email": ["A user with this email already exists"]}

    def test_teacher_with_classes_cannot_be_deleted(self, db, school, principals):
        result = teachers.delete_teacher(principals.admin, school.teacher_a, db)
        assert result.kind == ResultKind.BUSINESS_RULE

    def test_clearing_required_field_is_field_error(self, db, school, principals):
        result = teachers.update_teacher(principals.admin, school.teacher_a, {"department": None}, db)
        assert result.kind == ResultKind.VALIDATION
        assert "department" in result.errors

        result = teachers.update_teacher(principals.admin, school.teacher_a, {"email": None}, db)
        assert result.kind == ResultKind.VALIDATION
        assert "email" in result.errors

        db.expire_all()
        teacher = db.get(Teacher, school.teacher_a)
        assert teacher.department == "Science"
        assert teacher.user.email == "alice@school.org"


class TestParents:
    def test_duplicate_email_creates_nothing(self, db, school, principals):
        result = parents.register_parent(principals.admin, {
            "name": "Another Pam", "email": "PAM@school.org", "password": "secret99", "relationship": "Aunt",
        }, db)
        assert result.kind == ResultKind.CONFLICT
        assert result.errors == {"email": ["A user with this email already exists"]}

        assert db.query(Parent).count() == 2
        assert db.query(User).filter(User.name == "Another Pam").count() == 0

    def test_register_parent(self, db, school, principals):
        result = parents.register_parent(principals.admin, {
            "name": "Rita Parent", "email": "rita@school.org", "password": "secret99", "relationship": "Aunt",
        }, db)
        assert result.http_status == 201
        assert result.data.relationship == "Aunt"
        assert result.data.user.role == "PARENT"


class TestGrades:
    def test_grade_label_from_score(self, db, school, principals):
        result = grades.add_grade(principals.teacher_a, {
            "student_id": school.student_x, "subject": "Math", "term": "T1", "score": 85,
        }, db)
        assert result.success
        assert result.data.score == 85
        assert result.data.grade == "B"

    def test_teacher_of_other_class_is_denied(self, db, school, principals):
        payload = {"student_id": school.student_y, "subject": "Math", "term": "T1", "score": 70}

        denied = grades.add_grade(principals.teacher_a, payload, db)
        assert denied.kind == ResultKind.FORBIDDEN
        assert denied.errors == {FORM_ERROR_KEY: ["Student not found or not in your class"]}
        assert db.query(Grade).count() == 0

        granted = grades.add_grade(principals.teacher_b, payload, db)
        assert granted.success
        stored = db.get(Grade, granted.data.id)
        assert stored.student_id == school.student_y
        assert stored.teacher_id == school.teacher_b

    def test_score_out_of_range(self, db, school, principals):
        result = grades.add_grade(principals.teacher_a, {
            "student_id": school.student_x, "subject": "Math", "term": "T1", "score": 101,
        }, db)
        assert result.kind == ResultKind.VALIDATION
        assert "score" in result.errors

    def test_admin_does_not_grade(self, db, school, principals):
        result = grades.add_grade(principals.admin, {
            "student_id": school.student_x, "subject": "Math", "term": "T1", "score": 50,
        }, db)
        assert result.kind == ResultKind.FORBIDDEN

    def test_update_relabels(self, db, school, principals):
        created = grades.add_grade(principals.teacher_a, {
            "student_id": school.student_x, "subject": "Math", "term": "T1", "score": 85,
        }, db)
        updated = grades.update_grade(principals.teacher_a, created.data.id, {"score": 95}, db)
        assert updated.data.grade == "A"

        denied = grades.update_grade(principals.teacher_b, created.data.id, {"score": 10}, db)
        assert denied.kind == ResultKind.FORBIDDEN

    def test_student_grades_outside_scope_denied(self, db, school, principals):
        result = grades.get_student_grades(principals.parent_p, school.student_y, None, db)
        assert result.kind == ResultKind.FORBIDDEN

        result = grades.get_student_grades(principals.parent_p, "missing", None, db)
        assert result.kind == ResultKind.NOT_FOUND

    def test_grade_list_with_foreign_student_filter_denied(self, db, school, principals):
        result = grades.get_grades(principals.parent_p, {"student_id": school.student_y}, db)
        assert result.kind == ResultKind.FORBIDDEN

    def test_summary(self, db, school, principals):
        for subject, score in (("Math", 85), ("English", 95), ("History", 90)):
            grades.add_grade(principals.teacher_a, {
                "student_id": school.student_x, "subject": subject, "term": "T1", "score": score,
            }, db)

        summary = grades.get_grade_summary(principals.parent_p, school.student_x, db)
        assert summary.success
        assert summary.data.count == 3
        assert summary.data.average_score == 90.0
        assert summary.data.highest_score == 95
        assert summary.data.highest_subject == "English"
        assert summary.data.gpa == 3.67

    def test_summary_without_grades(self, db, school, principals):
        summary = grades.get_grade_summary(principals.teacher_b, school.student_y, db)
        assert summary.data.count == 0
        assert summary.data.average_score == 0
        assert summary.data.highest_subject is None
        assert summary.data.gpa is None

    def test_summary_scope(self, db, school, principals):
        assert grades.get_grade_summary(principals.parent_p, school.student_y, db).kind == ResultKind.FORBIDDEN
        assert grades.get_grade_summary(principals.teacher_a, school.student_y, db).kind == ResultKind.FORBIDDEN
        assert grades.get_grade_summary(principals.parent_p, "missing", db).kind == ResultKind.NOT_FOUND

        missing = grades.get_grade_summary(principals.admin, None, db)
        assert missing.kind == ResultKind.BUSINESS_RULE
        assert "student_id" in missing.errors


class TestAttendance:
    def test_marking_twice_keeps_one_record(self, db, school, principals):
        payload = {"date": "2024-03-01", "status": "Present", "student_id": school.student_x}

        first = attendance.mark_attendance(principals.teacher_a, payload, db)
        assert first.http_status == 201

        second = attendance.mark_attendance(principals.teacher_a, dict(payload, status="Late"), db)
        assert second.http_status == 200
        assert second.data.status == AttendanceStatus.LATE

        db.expire_all()
        records = db.query(Attendance).filter(Attendance.student_id == school.student_x).all()
        assert len(records) == 1
        assert records[0].status == AttendanceStatus.LATE

    def test_wrong_role_and_wrong_student(self, db, school, principals):
        payload = {"date": "2024-03-01", "status": "Present", "student_id": school.student_y}

        assert attendance.mark_attendance(principals.parent_q, payload, db).kind == ResultKind.FORBIDDEN
        denied = attendance.mark_attendance(principals.teacher_a, payload, db)
        assert denied.kind == ResultKind.FORBIDDEN
        assert denied.message == "Student not found or not in your class"

    def test_bulk_marking_upserts(self, db, school, principals):
        attendance.mark_attendance(principals.teacher_a, {"date": "2024-03-02", "status": "Absent", "student_id": school.student_x}, db)

        result = attendance.mark_bulk_attendance(principals.teacher_a, {
            "class_id": school.class_x, "date": "2024-03-02", "records": {school.student_x: "Present"},
        }, db)
        assert result.success
        assert (result.data.created, result.data.updated) == (0, 1)

    def test_bulk_rejects_students_of_other_classes(self, db, school, principals):
        result = attendance.mark_bulk_attendance(principals.admin, {
            "class_id": school.class_x, "date": "2024-03-02", "records": {school.student_y: "Present"},
        }, db)
        assert result.kind == ResultKind.BUSINESS_RULE
        assert db.query(Attendance).count() == 0

    def test_statistics(self, db, school, principals):
        for day, status in (("2024-03-04", "Present"), ("2024-03-05", "Present"), ("2024-03-06", "Absent"), ("2024-03-07", "Late")):
            attendance.mark_attendance(principals.teacher_a, {"date": day, "status": status, "student_id": school.student_x}, db)

        result = attendance.get_attendance_statistics(principals.parent_p, {}, db)
        assert result.data.total == 4
        assert result.data.present == 2
        assert result.data.attendance_rate == 50.0

        listed = attendance.get_attendance(principals.parent_p, {"start_date": "2024-03-05", "limit": 2}, db)
        assert listed.data.pagination.total == 3
        assert listed.data.pagination.pages == 2
        assert len(listed.data.attendance) == 2

    def test_only_admin_deletes(self, db, school, principals):
        created = attendance.mark_attendance(principals.teacher_a, {"date": "2024-03-01", "status": "Present", "student_id": school.student_x}, db)

        assert attendance.delete_attendance_record(principals.teacher_a, created.data.id, db).kind == ResultKind.FORBIDDEN
        assert attendance.delete_attendance_record(principals.admin, created.data.id, db).success


class TestMessages:
    def test_third_party_sees_nothing(self, db, school, principals):
        sent = messages.send_message(principals.teacher_a, {"receiver_id": school.parent_p_user, "content": "Hi"}, db)
        assert sent.http_status == 201

        outsider = messages.get_messages(principals.parent_q, {"conversation_with": school.teacher_a_user}, db)
        assert outsider.success
        assert outsider.data == []

    def test_reading_marks_received_messages(self, db, school, principals):
        sent = messages.send_message(principals.teacher_a, {"receiver_id": school.parent_p_user, "content": "Hi"}, db)

        conversations = messages.get_conversations(principals.parent_p, db)
        assert conversations.data[0].unread_count == 1
        assert conversations.data[0].user.id == school.teacher_a_user

        messages.get_messages(principals.parent_p, {"conversation_with": school.teacher_a_user}, db)

        db.expire_all()
        assert db.get(Message, sent.data.id).is_read is True

    def test_unknown_receiver(self, db, school, principals):
        result = messages.send_message(principals.teacher_a, {"receiver_id": "missing", "content": "Hi"}, db)
        assert result.kind == ResultKind.NOT_FOUND
        assert result.message == "Receiver not found"

    def test_only_sender_edits(self, db, school, principals):
        sent = messages.send_message(principals.teacher_a, {"receiver_id": school.parent_p_user, "content": "Hi"}, db)

        assert messages.update_message(principals.parent_p, sent.data.id, {"content": "Changed"}, db).kind == ResultKind.FORBIDDEN
        assert messages.update_message(principals.teacher_a, sent.data.id, {"content": "Changed"}, db).data.content == "Changed"
        assert messages.delete_message(principals.admin, sent.data.id, db).success

    def test_broadcast_to_role(self, db, school, principals):
        result = messages.broadcast_message(principals.admin, {"content": "School closes early", "target_role": "PARENT"}, db)
        assert result.http_status == 201
        assert result.data.messages_sent == 2

        receivers = {m.receiver_id for m in db.query(Message).filter(Message.sender_id == school.admin_user)}
        assert receivers == {school.parent_p_user, school.parent_q_user}

    def test_broadcast_restrictions(self, db, school, principals):
        denied = messages.broadcast_message(principals.teacher_a, {"content": "Hi", "target_role": "PARENT"}, db)
        assert denied.kind == ResultKind.FORBIDDEN

        admins = messages.broadcast_message(principals.admin, {"content": "Hi", "target_role": "ADMIN"}, db)
        assert admins.kind == ResultKind.VALIDATION
        assert "target_role" in admins.errors
        assert db.query(Message).count() == 0

    def test_broadcast_to_empty_role(self, db, school, principals):
        students.delete_student(principals.admin, school.student_x, db)
        students.delete_student(principals.admin, school.student_y, db)

        result = messages.broadcast_message(principals.admin, {"content": "Hi", "target_role": "STUDENT"}, db)
        assert result.kind == ResultKind.NOT_FOUND
        assert result.message == "No students found"


class TestEvents:
    def test_parent_cannot_create_event(self, db, school, principals):
        result = events.create_event(principals.parent_p, event_payload(), db)
        assert result.kind == ResultKind.FORBIDDEN

    def test_registration_flow(self, db, school, principals):
        created = events.create_event(principals.teacher_a, event_payload(capacity=1, requires_approval=True), db)
        event_id = created.data.id
        assert created.data.can_edit is True

        registered = events.register_for_event(principals.parent_p, event_id, db)
        assert registered.http_status == 201
        assert registered.data.status == RegistrationStatus.PENDING

        again = events.register_for_event(principals.parent_p, event_id, db)
        assert again.kind == ResultKind.BUSINESS_RULE

        full = events.register_for_event(principals.parent_q, event_id, db)
        assert full.kind == ResultKind.BUSINESS_RULE
        assert full.message == "Event is at full capacity"

        notified = db.query(Notification).filter(Notification.user_id == school.teacher_a_user).count()
        assert notified == 1

        viewed = events.get_event(principals.parent_p, event_id, db)
        assert viewed.data.is_registered is True
        assert viewed.data.can_edit is False

        assert events.get_event_registrations(principals.parent_p, event_id, db).kind == ResultKind.FORBIDDEN
        listed = events.get_event_registrations(principals.teacher_a, event_id, db)
        assert listed.total == 1

        approved = events.set_registration_status(principals.teacher_a, event_id, listed.data[0].id, {"status": "APPROVED"}, db)
        assert approved.data.status == RegistrationStatus.APPROVED

        cancelled = events.cancel_registration(principals.parent_p, event_id, db)
        assert cancelled.success
        assert events.cancel_registration(principals.parent_p, event_id, db).kind == ResultKind.NOT_FOUND

    def test_deadline_passed(self, db, school, principals):
        created = events.create_event(principals.admin, event_payload(
            registration_deadline=(utcnow() - timedelta(days=1)).isoformat()
        ), db)
        result = events.register_for_event(principals.parent_p, created.data.id, db)
        assert result.kind == ResultKind.BUSINESS_RULE
        assert db.query(Registration).count() == 0

    def test_private_event_hidden(self, db, school, principals):
        created = events.create_event(principals.teacher_a, event_payload(is_public=False), db)

        assert events.get_event(principals.parent_p, created.data.id, db).kind == ResultKind.FORBIDDEN
        assert events.get_event(principals.parent_p, "missing", db).kind == ResultKind.NOT_FOUND
        assert events.get_events(principals.parent_p, {}, db).data == []
        assert events.get_events(principals.teacher_a, {}, db).total == 1

    def test_end_before_start_rejected(self, db, school, principals):
        result = events.create_event(principals.admin, event_payload(start_time="12:00", end_time="09:00"), db)
        assert result.kind == ResultKind.VALIDATION
        assert db.query(Event).count() == 0

    def test_only_organizer_or_admin_changes_event(self, db, school, principals):
        created = events.create_event(principals.teacher_a, event_payload(), db)
        event_id = created.data.id

        denied = events.update_event(principals.teacher_b, event_id, {"title": "Taken over"}, db)
        assert denied.kind == ResultKind.FORBIDDEN
        assert events.delete_event(principals.teacher_b, event_id, db).kind == ResultKind.FORBIDDEN
        assert events.delete_event(principals.parent_p, event_id, db).kind == ResultKind.FORBIDDEN

        db.expire_all()
        assert db.get(Event, event_id).title == "Science fair"

        updated = events.update_event(principals.admin, event_id, {"title": "Science week"}, db)
        assert updated.success
        assert updated.data.title == "Science week"
        assert updated.data.organizer_id == school.teacher_a_user

    def test_delete_event_removes_registrations(self, db, school, principals):
        created = events.create_event(principals.teacher_a, event_payload(), db)
        event_id = created.data.id
        events.register_for_event(principals.parent_p, event_id, db)

        deleted = events.delete_event(principals.teacher_a, event_id, db)
        assert deleted.success

        db.expire_all()
        assert db.get(Event, event_id) is None
        assert db.query(Registration).count() == 0
        assert events.delete_event(principals.admin, event_id, db).kind == ResultKind.NOT_FOUND

    def test_admin_deletes_foreign_event(self, db, school, principals):
        created = events.create_event(principals.teacher_a, event_payload(), db)
        assert events.delete_event(principals.admin, created.data.id, db).success
        assert db.query(Event).count() == 0

    def test_offset_timestamps_stored_as_utc(self, db, school, principals):
        created = events.create_event(principals.teacher_a, event_payload(
            date="2099-06-01T10:00:00+05:00",
            registration_deadline="2099-05-31T23:30:00-02:00",
        ), db)
        assert created.success

        db.expire_all()
        stored = db.get(Event, created.data.id)
        assert stored.date == datetime(2099, 6, 1, 5, 0)
        assert stored.registration_deadline == datetime(2099, 6, 1, 1, 30)

        updated = events.update_event(principals.teacher_a, created.data.id, {"date": "2099-07-01T00:00:00+02:00"}, db)
        assert updated.success
        db.expire_all()
        assert db.get(Event, created.data.id).date == datetime(2099, 6, 30, 22, 0)

    def test_offset_deadline_in_the_past(self, db, school, principals):
        past = (utcnow() - timedelta(days=1)).strftime("%Y-%m-%dT%H:%M:%S") + "+00:00"
        created = events.create_event(principals.admin, event_payload(registration_deadline=past), db)
        assert created.success

        result = events.register_for_event(principals.parent_p, created.data.id, db)
        assert result.kind == ResultKind.BUSINESS_RULE
        assert db.query(Registration).count() == 0


class TestEventPlanning:
    def test_schedule(self, db, school, principals):
        event_id = events.create_event(principals.teacher_a, event_payload(), db).data.id

        later = event_planning.add_schedule_item(principals.teacher_a, event_id, {
            "title": "Awards", "start_time": "11:00", "end_time": "12:00",
        }, db)
        assert later.http_status == 201
        event_planning.add_schedule_item(principals.admin, event_id, {
            "title": "Opening", "start_time": "09:00", "end_time": "09:30", "location": "Stage",
        }, db)

        schedule = event_planning.get_event_schedule(principals.parent_p, event_id, db)
        assert [item.title for item in schedule.data] == ["Opening", "Awards"]
        assert schedule.total == 2

        moved = event_planning.update_schedule_item(principals.teacher_a, event_id, later.data.id, {"start_time": "10:30"}, db)
        assert moved.data.start_time == "10:30"

        backwards = event_planning.update_schedule_item(principals.teacher_a, event_id, later.data.id, {"end_time": "10:00"}, db)
        assert backwards.kind == ResultKind.BUSINESS_RULE
        assert "end_time" in backwards.errors
        db.expire_all()
        assert db.get(ScheduleItem, later.data.id).end_time == "12:00"

        assert event_planning.delete_schedule_item(principals.teacher_a, event_id, later.data.id, db).success
        assert db.query(ScheduleItem).count() == 1

    def test_schedule_item_order_validated(self, db, school, principals):
        event_id = events.create_event(principals.teacher_a, event_payload(), db).data.id
        result = event_planning.add_schedule_item(principals.teacher_a, event_id, {
            "title": "Lunch", "start_time": "13:00", "end_time": "12:00",
        }, db)
        assert result.kind == ResultKind.VALIDATION
        assert db.query(ScheduleItem).count() == 0

    def test_resources(self, db, school, principals):
        event_id = events.create_event(principals.teacher_a, event_payload(), db).data.id

        chairs = event_planning.add_event_resource(principals.teacher_a, event_id, {"name": "Chairs", "type": "furniture", "quantity": 40}, db)
        assert chairs.http_status == 201
        event_planning.add_event_resource(principals.teacher_a, event_id, {"name": "Amplifier", "type": "audio", "quantity": 1}, db)

        listed = event_planning.get_event_resources(principals.parent_q, event_id, db)
        assert [r.name for r in listed.data] == ["Amplifier", "Chairs"]

        updated = event_planning.update_event_resource(principals.teacher_a, event_id, chairs.data.id, {"quantity": 60}, db)
        assert updated.data.quantity == 60

        cleared = event_planning.update_event_resource(principals.teacher_a, event_id, chairs.data.id, {"quantity": None}, db)
        assert cleared.kind == ResultKind.VALIDATION

        assert event_planning.add_event_resource(principals.teacher_a, event_id, {"name": "Tables", "type": "furniture", "quantity": 0}, db).kind == ResultKind.VALIDATION
        assert event_planning.delete_event_resource(principals.admin, event_id, chairs.data.id, db).success
        assert db.query(EventResource).count() == 1

    def test_only_organizer_or_admin_plans(self, db, school, principals):
        event_id = events.create_event(principals.teacher_a, event_payload(), db).data.id
        item = {"title": "Opening", "start_time": "09:00", "end_time": "09:30"}

        assert event_planning.add_schedule_item(principals.parent_p, event_id, item, db).kind == ResultKind.FORBIDDEN
        assert event_planning.add_schedule_item(principals.teacher_b, event_id, item, db).kind == ResultKind.FORBIDDEN
        assert event_planning.add_event_resource(principals.teacher_b, event_id, {"name": "Chairs", "type": "furniture", "quantity": 1}, db).kind == ResultKind.FORBIDDEN
        assert db.query(ScheduleItem).count() == 0
        assert db.query(EventResource).count() == 0

    def test_private_event_plan_hidden(self, db, school, principals):
        event_id = events.create_event(principals.teacher_a, event_payload(is_public=False), db).data.id

        assert event_planning.get_event_schedule(principals.parent_p, event_id, db).kind == ResultKind.FORBIDDEN
        assert event_planning.get_event_resources(principals.teacher_b, event_id, db).kind == ResultKind.FORBIDDEN
        assert event_planning.get_event_schedule(principals.admin, event_id, db).success
        assert event_planning.get_event_schedule(principals.parent_p, "missing", db).kind == ResultKind.NOT_FOUND

    def test_items_addressed_through_other_event(self, db, school, principals):
        first = events.create_event(principals.teacher_a, event_payload(), db).data.id
        second = events.create_event(principals.teacher_a, event_payload(title="Sports day"), db).data.id
        item = event_planning.add_schedule_item(principals.teacher_a, first, {
            "title": "Opening", "start_time": "09:00", "end_time": "09:30",
        }, db)

        result = event_planning.delete_schedule_item(principals.teacher_a, second, item.data.id, db)
        assert result.kind == ResultKind.NOT_FOUND
        assert result.message == "Schedule item not found"
        assert db.query(ScheduleItem).count() == 1

    def test_plan_removed_with_event(self, db, school, principals):
        event_id = events.create_event(principals.teacher_a, event_payload(), db).data.id
        event_planning.add_schedule_item(principals.teacher_a, event_id, {"title": "Opening", "start_time": "09:00", "end_time": "09:30"}, db)
        event_planning.add_event_resource(principals.teacher_a, event_id, {"name": "Chairs", "type": "furniture", "quantity": 10}, db)

        assert events.delete_event(principals.teacher_a, event_id, db).success
        assert db.query(ScheduleItem).count() == 0
        assert db.query(EventResource).count() == 0


class TestUsers:
    def test_admin_cannot_delete_self(self, db, school, principals):
        result = users.delete_user(principals.admin, school.admin_user, db)
        assert result.kind == ResultKind.FORBIDDEN

    def test_parent_with_children_cannot_be_deleted(self, db, school, principals):
        result = users.delete_user(principals.admin, school.parent_p_user, db)
        assert result.kind == ResultKind.BUSINESS_RULE

    def test_teacher_with_classes_cannot_be_deleted(self, db, school, principals):
        result = users.delete_user(principals.admin, school.teacher_a_user, db)
        assert result.kind == ResultKind.BUSINESS_RULE
        assert result.message == "Cannot delete a teacher who is assigned to classes. Reassign the classes first."

        db.expire_all()
        assert db.get(User, school.teacher_a_user) is not None
        assert db.get(Teacher, school.teacher_a) is not None
        assert db.get(SchoolClass, school.class_x).teacher_id == school.teacher_a

    def test_teacher_without_classes_can_be_deleted(self, db, school, principals):
        classes.update_class(principals.admin, school.class_y, {"teacher_id": school.teacher_a}, db)

        assert users.delete_user(principals.admin, school.teacher_b_user, db).success
        db.expire_all()
        assert db.get(Teacher, school.teacher_b) is None

    def test_change_own_password(self, db, school, principals):
        result = users.change_password(principals.parent_p, school.parent_p_user, {
            "current_password": "secret123", "new_password": "a-longer-secret",
        }, db)
        assert result.success

        db.expire_all()
        stored = db.get(User, school.parent_p_user).password
        assert verify_password("a-longer-secret", stored)
        assert not verify_password("secret123", stored)

    def test_change_password_restrictions(self, db, school, principals):
        payload = {"current_password": "secret123", "new_password": "a-longer-secret"}
        assert users.change_password(principals.admin, school.parent_p_user, payload, db).kind == ResultKind.FORBIDDEN

        wrong = users.change_password(principals.parent_p, school.parent_p_user, dict(payload, current_password="nope"), db)
        assert wrong.kind == ResultKind.BUSINESS_RULE
        assert wrong.errors == {"current_password": ["Current password is incorrect"]}

        short = users.change_password(principals.parent_p, school.parent_p_user, dict(payload, new_password="short"), db)
        assert short.kind == ResultKind.VALIDATION
        assert "new_password" in short.errors

        db.expire_all()
        assert verify_password("secret123", db.get(User, school.parent_p_user).password)

    def test_stats(self, db, school, principals):
        result = users.get_user_stats(principals.admin, db)
        assert result.data.users == 7
        assert result.data.teachers == 2
        assert result.data.students == 2
        assert result.data.classes == 2

        assert users.get_user_stats(principals.teacher_a, db).kind == ResultKind.FORBIDDEN

    def test_email_change_conflicts(self, db, school, principals):
        result = users.update_user(principals.admin, school.parent_q_user, {"email": "pam@school.org"}, db)
        assert result.kind == ResultKind.CONFLICT
