"""
HTTP behaviour: status codes, scoping and the form-action envelope.
"""

from school_backend.model import Attendance, Grade, User
from school_backend.tests.conftest import PASSWORD


class TestAuth:
    def test_login_me_logout(self, client_for, school):
        client = client_for()

        assert client.get("/auth/me").status_code == 401

        response = client.post("/auth/login", json={"email": "Alice@School.org", "password": PASSWORD})
        assert response.status_code == 200
        assert response.json()["teacher_id"] == school.teacher_a

        me = client.get("/auth/me")
        assert me.status_code == 200
        assert me.json()["role"] == "TEACHER"

        assert client.post("/auth/logout").status_code == 204
        assert client.get("/auth/me").status_code == 401

    def test_wrong_password(self, client_for, school):
        response = client_for().post("/auth/login", json={"email": "alice@school.org", "password": "nope"})
        assert response.status_code == 401

    def test_anonymous_requests_rejected(self, client_for, school):
        client = client_for()
        for path in ("/classes", "/students", "/grades", "/attendance", "/messages", "/events", "/users"):
            assert client.get(path).status_code == 401, path


class TestClasses:
    def test_create_update_and_read(self, client_for, school):
        admin = client_for(school.admin_user)

        created = admin.post("/classes", json={"name": "O LEVEL", "grade": "o level", "section": "A"})
        assert created.status_code == 201
        class_id = created.json()["id"]
        assert created.json()["teacher_id"] is None

        updated = admin.patch(f"/classes/{class_id}", json={"teacher_id": school.teacher_a})
        assert updated.status_code == 200

        fetched = admin.get(f"/classes/{class_id}")
        assert fetched.json()["teacher"]["id"] == school.teacher_a

    def test_duplicate_name_is_conflict(self, client_for, school):
        response = client_for(school.admin_user).post("/classes", json={"name": "Form 1Y", "grade": "10", "section": "Q"})
        assert response.status_code == 409
        assert "name" in response.json()["detail"]["errors"]

    def test_delete_with_students_is_bad_request(self, client_for, school):
        response = client_for(school.admin_user).delete(f"/classes/{school.class_y}")
        assert response.status_code == 400

    def test_teacher_list_is_scoped_and_counted(self, client_for, school):
        response = client_for(school.teacher_b_user).get("/classes")
        assert response.status_code == 200
        assert [c["id"] for c in response.json()] == [school.class_y]
        assert response.headers["X-Total-Count"] == "1"

    def test_teacher_cannot_read_foreign_class(self, client_for, school):
        assert client_for(school.teacher_b_user).get(f"/classes/{school.class_x}").status_code == 403

    def test_missing_fields(self, client_for, school):
        response = client_for(school.admin_user).post("/classes", json={"name": "Form 9"})
        assert response.status_code == 400
        errors = response.json()["detail"]["errors"]
        assert "grade" in errors and "section" in errors


class TestStudentScoping:
    def test_parent_cannot_widen_filter(self, client_for, school):
        response = client_for(school.parent_p_user).get("/students", params={"parent_id": school.parent_q})
        assert response.status_code == 200
        assert [s["id"] for s in response.json()] == [school.student_x]

    def test_parent_cannot_read_other_child(self, client_for, school):
        client = client_for(school.parent_p_user)
        assert client.get(f"/students/{school.student_y}").status_code == 403
        assert client.get("/students/unknown").status_code == 404

    def test_foreign_student_grades_denied(self, client_for, school):
        client = client_for(school.parent_p_user)
        assert client.get("/grades", params={"student_id": school.student_y}).status_code == 403
        assert client.get(f"/students/{school.student_y}/grades").status_code == 403

    def test_invalid_list_parameters(self, client_for, school):
        response = client_for(school.admin_user).get("/students", params={"limit": 0})
        assert response.status_code == 400


class TestGrades:
    def test_teacher_grades_own_student(self, client_for, db, school):
        payload = {"student_id": school.student_y, "subject": "Art", "term": "T1", "score": 85}

        denied = client_for(school.teacher_a_user).post("/grades", json=payload)
        assert denied.status_code == 403
        assert denied.json()["detail"]["error"] == "Student not found or not in your class"

        created = client_for(school.teacher_b_user).post("/grades", json=payload)
        assert created.status_code == 201
        assert created.json()["grade"] == "B"

        grades = db.query(Grade).all()
        assert len(grades) == 1
        assert grades[0].teacher_id == school.teacher_b

    def test_student_sees_own_grades(self, client_for, school):
        client_for(school.teacher_a_user).post("/grades", json={
            "student_id": school.student_x, "subject": "Math", "term": "T1", "score": 91,
        })

        own = client_for(school.student_x_user).get("/grades")
        assert [g["grade"] for g in own.json()] == ["A"]

        other = client_for(school.student_y_user).get("/grades")
        assert other.json() == []


class TestAttendance:
    def test_mark_then_update(self, client_for, db, school):
        client = client_for(school.teacher_a_user)
        payload = {"date": "2024-04-01", "status": "Present", "student_id": school.student_x}

        assert client.post("/attendance", json=payload).status_code == 201
        second = client.post("/attendance", json=dict(payload, status="Excused"))
        assert second.status_code == 200
        assert second.json()["status"] == "Excused"

        assert db.query(Attendance).count() == 1

    def test_status_codes(self, client_for, school):
        payload = {"date": "2024-04-01", "status": "Present", "student_id": school.student_y}

        assert client_for().post("/attendance", json=payload).status_code == 401
        assert client_for(school.teacher_a_user).post("/attendance", json={"date": "2024-04-01"}).status_code == 400
        assert client_for(school.parent_q_user).post("/attendance", json=payload).status_code == 403
        assert client_for(school.teacher_a_user).post("/attendance", json=payload).status_code == 403

    def test_list_empty_when_nothing_matches(self, client_for, school):
        response = client_for(school.parent_q_user).get("/attendance", params={"start_date": "2024-01-01", "page": 1, "limit": 10})
        assert response.status_code == 200
        body = response.json()
        assert body["attendance"] == []
        assert body["statistics"]["total"] == 0
        assert body["pagination"]["page"] == 1

    def test_bulk_and_summary(self, client_for, school):
        teacher = client_for(school.teacher_b_user)
        response = teacher.post("/attendance/bulk", json={
            "class_id": school.class_y, "date": "2024-04-02", "records": {school.student_y: "Absent"},
        })
        assert response.status_code == 200
        assert response.json() == {"created": 1, "updated": 0}

        summary = client_for(school.parent_q_user).get("/attendance/summary")
        assert summary.json()["absent"] == 1
        assert summary.json()["attendance_rate"] == 0.0

    def test_bulk_for_foreign_class_forbidden(self, client_for, school):
        response = client_for(school.teacher_a_user).post("/attendance/bulk", json={
            "class_id": school.class_y, "date": "2024-04-02", "records": {school.student_y: "Absent"},
        })
        assert response.status_code == 403


class TestMessages:
    def test_conversation_visibility(self, client_for, school):
        sent = client_for(school.parent_p_user).post("/messages", json={"receiver_id": school.teacher_a_user, "content": "Question"})
        assert sent.status_code == 201

        teacher = client_for(school.teacher_a_user).get("/messages", params={"conversation_with": school.parent_p_user})
        assert [m["content"] for m in teacher.json()] == ["Question"]

        outsider = client_for(school.parent_q_user).get("/messages")
        assert outsider.json() == []
        assert outsider.headers["X-Total-Count"] == "0"

        conversations = client_for(school.teacher_a_user).get("/messages/conversations")
        assert conversations.json()[0]["user"]["id"] == school.parent_p_user

    def test_outsider_cannot_delete(self, client_for, school):
        sent = client_for(school.parent_p_user).post("/messages", json={"receiver_id": school.teacher_a_user, "content": "Hi"})
        message_id = sent.json()["id"]

        assert client_for(school.parent_q_user).delete(f"/messages/{message_id}").status_code == 403
        assert client_for(school.parent_p_user).delete(f"/messages/{message_id}").status_code == 200


class TestEvents:
    def test_register_and_notify(self, client_for, school):
        organizer = client_for(school.teacher_a_user)
        created = organizer.post("/events", json={
            "title": "Sports day", "description": "All classes", "date": "2099-06-01T08:00:00",
            "start_time": "08:00", "end_time": "15:00", "location": "Field", "category": "sports",
        })
        assert created.status_code == 201
        event_id = created.json()["id"]

        parent = client_for(school.parent_q_user)
        registered = parent.post(f"/events/{event_id}/register")
        assert registered.status_code == 201
        assert registered.json()["status"] == "APPROVED"
        assert parent.post(f"/events/{event_id}/register").status_code == 400

        notifications = organizer.get("/notifications")
        assert len(notifications.json()) == 1
        assert organizer.post("/notifications/read-all").json()["updated"] == 1

        assert parent.get(f"/events/{event_id}/registrations").status_code == 403
        assert organizer.get(f"/events/{event_id}/registrations").headers["X-Total-Count"] == "1"

        assert parent.put(f"/events/{event_id}", json={"title": "Mine now"}).status_code == 403
        assert organizer.put(f"/events/{event_id}", json={"title": "Sports week"}).json()["title"] == "Sports week"

    def test_date_filter(self, client_for, school):
        admin = client_for(school.admin_user)
        admin.post("/events", json={
            "title": "Open day", "description": "Visitors", "date": "2099-05-01T10:00:00",
            "start_time": "10:00", "end_time": "14:00", "location": "School", "category": "community",
        })

        assert len(admin.get("/events", params={"date": "2099-05-01"}).json()) == 1
        assert admin.get("/events", params={"date": "2099-05-02"}).json() == []

    def test_schedule_and_resources(self, client_for, school):
        organizer = client_for(school.teacher_a_user)
        event_id = organizer.post("/events", json={
            "title": "Concert", "description": "Spring concert", "date": "2099-04-01T18:00:00+02:00",
            "start_time": "18:00", "end_time": "21:00", "location": "Hall", "category": "arts",
        }).json()["id"]
        assert organizer.get(f"/events/{event_id}").json()["date"].startswith("2099-04-01T16:00:00")

        item = organizer.post(f"/events/{event_id}/schedule", json={"title": "Choir", "start_time": "18:00", "end_time": "19:00"})
        assert item.status_code == 201
        assert organizer.patch(f"/events/{event_id}/schedule/{item.json()['id']}", json={"location": "Stage"}).json()["location"] == "Stage"

        assert organizer.post(f"/events/{event_id}/resources", json={"name": "Piano", "type": "instrument", "quantity": 1}).status_code == 201

        parent = client_for(school.parent_p_user)
        assert parent.get(f"/events/{event_id}/schedule").headers["X-Total-Count"] == "1"
        assert parent.get(f"/events/{event_id}/resources").json()[0]["name"] == "Piano"
        assert parent.post(f"/events/{event_id}/resources", json={"name": "Drum", "type": "instrument", "quantity": 1}).status_code == 403

        other = client_for(school.teacher_b_user)
        assert other.delete(f"/events/{event_id}/schedule/{item.json()['id']}").status_code == 403
        assert other.delete(f"/events/{event_id}").status_code == 403
        assert client_for(school.admin_user).delete(f"/events/{event_id}").status_code == 200


class TestUsers:
    def test_admin_panel(self, client_for, school):
        admin = client_for(school.admin_user)

        listed = admin.get("/users", params={"role": "PARENT"})
        assert listed.headers["X-Total-Count"] == "2"

        stats = admin.get("/users/stats")
        assert stats.json()["users"] == 7

        assert admin.delete(f"/users/{school.admin_user}").status_code == 403

    def test_non_admin_denied(self, client_for, school):
        client = client_for(school.teacher_a_user)
        assert client.get("/users").status_code == 403
        assert client.get("/users/stats").status_code == 403
        assert client.get(f"/users/{school.teacher_a_user}").status_code == 200

    def test_change_password_then_login(self, client_for, school):
        parent = client_for(school.parent_p_user)
        url = f"/users/{school.parent_p_user}/password"

        assert parent.put(url, json={"current_password": "wrong", "new_password": "a-longer-secret"}).status_code == 400
        assert client_for(school.parent_q_user).put(url, json={"current_password": PASSWORD, "new_password": "a-longer-secret"}).status_code == 403
        assert parent.put(url, json={"current_password": PASSWORD, "new_password": "a-longer-secret"}).status_code == 200

        anonymous = client_for()
        assert anonymous.post("/auth/login", json={"email": "pam@school.org", "password": PASSWORD}).status_code == 401
        assert anonymous.post("/auth/login", json={"email": "pam@school.org", "password": "a-longer-secret"}).status_code == 200

    def test_teacher_account_with_classes_kept(self, client_for, db, school):
        response = client_for(school.admin_user).delete(f"/users/{school.teacher_a_user}")
        assert response.status_code == 400
        assert db.get(User, school.teacher_a_user) is not None


class TestBroadcast:
    def test_admin_broadcasts_to_teachers(self, client_for, school):
        response = client_for(school.admin_user).post("/messages/broadcast", json={"content": "Staff meeting", "target_role": "TEACHER"})
        assert response.status_code == 201
        assert response.json() == {"messages_sent": 2, "total_targets": 2, "target_role": "TEACHER"}

        inbox = client_for(school.teacher_b_user).get("/messages")
        assert [m["content"] for m in inbox.json()] == ["Staff meeting"]

    def test_refused(self, client_for, school):
        assert client_for(school.teacher_a_user).post("/messages/broadcast", json={"content": "Hi", "target_role": "PARENT"}).status_code == 403
        assert client_for(school.admin_user).post("/messages/broadcast", json={"content": "Hi", "target_role": "ADMIN"}).status_code == 400


class TestFormActions:
    def test_success_envelope(self, client_for, school):
        response = client_for(school.admin_user).post("/actions/addClass", json={"name": "Form 2A", "grade": "11", "section": "A"})
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Class added successfully"
        assert body["data"]["grade"] == "11"

    def test_failures_stay_in_the_body(self, client_for, school):
        anonymous = client_for().post("/actions/getClasses", json={})
        assert anonymous.status_code == 200
        assert anonymous.json() == {"success": False, "error": "You must be logged in", "errors": {"_form": ["You must be logged in"]}}

        denied = client_for(school.teacher_a_user).post("/actions/addGrade", json={
            "student_id": school.student_y, "subject": "Art", "term": "T1", "score": 60,
        })
        assert denied.status_code == 200
        assert denied.json()["errors"] == {"_form": ["Student not found or not in your class"]}

        invalid = client_for(school.admin_user).post("/actions/registerStudent", json={"first_name": "Zoe"})
        assert invalid.status_code == 200
        assert "admission_number" in invalid.json()["errors"]

        blocked = client_for(school.admin_user).post("/actions/deleteClass", json={"id": school.class_x})
        assert blocked.json()["success"] is False

    def test_update_by_id(self, client_for, school):
        response = client_for(school.admin_user).post("/actions/updateStudent", json={"id": school.student_x, "section": "Z"})
        assert response.json()["data"]["section"] == "Z"

    def test_unknown_action(self, client_for, school):
        assert client_for(school.admin_user).post("/actions/dropDatabase", json={}).status_code == 404

    def test_planning_and_account_actions(self, client_for, school):
        organizer = client_for(school.teacher_a_user)
        event_id = organizer.post("/actions/createEvent", json={
            "title": "Book fair", "description": "Bring a book", "date": "2099-03-01T09:00:00",
            "start_time": "09:00", "end_time": "13:00", "location": "Library", "category": "academic",
        }).json()["data"]["id"]

        item = organizer.post("/actions/addScheduleItem", json={
            "event_id": event_id, "title": "Swap", "start_time": "10:00", "end_time": "11:00",
        }).json()
        assert item["success"] is True

        moved = organizer.post("/actions/updateScheduleItem", json={
            "event_id": event_id, "item_id": item["data"]["id"], "end_time": "12:00",
        }).json()
        assert moved["data"]["end_time"] == "12:00"

        resource = organizer.post("/actions/addEventResource", json={
            "event_id": event_id, "name": "Shelves", "type": "furniture", "quantity": 4,
        }).json()
        assert organizer.post("/actions/updateEventResource", json={
            "event_id": event_id, "resource_id": resource["data"]["id"], "quantity": 6,
        }).json()["data"]["quantity"] == 6

        parent = client_for(school.parent_p_user)
        assert len(parent.post("/actions/getEventSchedule", json={"event_id": event_id}).json()["data"]) == 1
        assert parent.post("/actions/deleteEventResource", json={
            "event_id": event_id, "resource_id": resource["data"]["id"],
        }).json()["success"] is False

        assert organizer.post("/actions/deleteScheduleItem", json={"event_id": event_id, "item_id": item["data"]["id"]}).json()["success"] is True
        assert organizer.post("/actions/getEventResources", json={"event_id": event_id}).json()["data"][0]["quantity"] == 6

        summary = parent.post("/actions/getGradeSummary", json={"student_id": school.student_x}).json()
        assert summary["data"]["count"] == 0
        assert parent.post("/actions/getGradeSummary", json={"student_id": school.student_y}).json()["success"] is False

        changed = parent.post("/actions/changePassword", json={"current_password": PASSWORD, "new_password": "a-longer-secret"}).json()
        assert changed == {"success": True, "data": {"id": school.parent_p_user}, "message": "Password updated successfully"}

        broadcast = client_for(school.admin_user).post("/actions/broadcastMessage", json={"content": "Closed Monday", "target_role": "STUDENT"}).json()
        assert broadcast["data"]["messages_sent"] == 2
