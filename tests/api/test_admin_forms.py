from uuid import UUID

from tests.api.base import *  # noqa: F401,F403


class AdminFormCrudTests(FormsApiBase):
    def test_admin_creates_normalized_form(self):
        form = self._create_form()
        self.assertEqual(form["name"], "Contact us")
        self.assertEqual(form["purpose"], "general")
        self.assertEqual(form["created_by"], "admin@example.com")
        self.assertEqual(form["styles"]["primaryColor"], "#0F766E")
        self.assertEqual(form["settings"]["styles"]["primaryColor"], "#0F766E")

        column = form["schema"][0]["columns"][0]
        self.assertTrue(form["schema"][0]["id"])
        self.assertTrue(column["id"])
        self.assertEqual(column["width"], "100%")
        fields = {field["name"]: field for field in column["fields"]}
        self.assertTrue(all(field["id"] for field in fields.values()))
        self.assertEqual(fields["phone"]["conditional"], {"field": "call_back", "value": "Yes"})
        self.assertNotIn("mapping", fields["call_back"])
        self.assertEqual(fields["email"]["styles"]["inputBorderStyle"], "solid")

    def test_duplicate_form_name_rejected(self):
        self._create_form()
        response = self.client.post(
            "/api/admin/forms",
            headers=self._auth_headers(ROLE_ADMIN),
            json=contact_form_payload(),
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("already exists", response.json()["detail"])

    def test_blank_name_rejected(self):
        response = self.client.post(
            "/api/admin/forms",
            headers=self._auth_headers(ROLE_ADMIN),
            json=contact_form_payload(name="   "),
        )
        self.assertEqual(response.status_code, 400)

    def test_duplicate_field_names_rejected(self):
        payload = contact_form_payload()
        fields = payload["schema"][0]["columns"][0]["fields"]
        fields.append(dict(fields[0]))
        response = self.client.post("/api/admin/forms", headers=self._auth_headers(ROLE_ADMIN), json=payload)
        self.assertEqual(response.status_code, 400)

    def test_unknown_field_type_is_unprocessable(self):
        payload = contact_form_payload()
        payload["schema"][0]["columns"][0]["fields"][0]["type"] = "signature"
        response = self.client.post("/api/admin/forms", headers=self._auth_headers(ROLE_ADMIN), json=payload)
        self.assertEqual(response.status_code, 422)

    def test_auth_and_roles(self):
        response = self.client.post("/api/admin/forms", json=contact_form_payload())
        self.assertEqual(response.status_code, 401)

        response = self.client.post(
            "/api/admin/forms",
            headers={"Authorization": "Bearer not-a-token"},
            json=contact_form_payload(),
        )
        self.assertEqual(response.status_code, 401)

        response = self.client.post(
            "/api/admin/forms",
            headers=self._auth_headers(ROLE_MANAGER),
            json=contact_form_payload(),
        )
        self.assertEqual(response.status_code, 403)

    def test_list_and_filter_by_purpose(self):
        self._create_form()
        self._create_form(task_list_payload())

        response = self.client.get("/api/admin/forms", headers=self._auth_headers(ROLE_MANAGER))
        self.assertEqual(response.status_code, 200)
        self.assertEqual({row["name"] for row in response.json()}, {"Contact us", "Daily checklist"})

        response = self.client.get(
            "/api/admin/forms",
            params={"purpose": "reminder_task_list"},
            headers=self._auth_headers(ROLE_ADMIN),
        )
        self.assertEqual([row["name"] for row in response.json()], ["Daily checklist"])

        response = self.client.get("/api/admin/forms", headers=self._auth_headers(ROLE_STAFF))
        self.assertEqual(response.status_code, 403)

    def test_get_update_delete(self):
        form = self._create_form()
        headers = self._auth_headers(ROLE_ADMIN)

        response = self.client.get(f"/api/admin/forms/{form['id']}", headers=headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["schema"], form["schema"])

        payload = contact_form_payload(name="Contact us (v2)")
        payload["schema"] = form["schema"]
        response = self.client.put(f"/api/admin/forms/{form['id']}", headers=headers, json=payload)
        self.assertEqual(response.status_code, 200)
        updated = response.json()["form"]
        self.assertEqual(updated["name"], "Contact us (v2)")
        self.assertEqual(updated["schema"], form["schema"])

        with self.SessionLocal() as db:
            db.add(FormSubmission(form_id=UUID(form["id"]), data={}, crm_data={}))
            db.commit()

        response = self.client.delete(f"/api/admin/forms/{form['id']}", headers=headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["submissions_deleted"], 1)

        response = self.client.get(f"/api/admin/forms/{form['id']}", headers=headers)
        self.assertEqual(response.status_code, 404)

    def test_unknown_and_malformed_ids(self):
        headers = self._auth_headers(ROLE_ADMIN)
        response = self.client.get("/api/admin/forms/00000000-0000-0000-0000-000000000000", headers=headers)
        self.assertEqual(response.status_code, 404)
        response = self.client.get("/api/admin/forms/not-a-uuid", headers=headers)
        self.assertEqual(response.status_code, 404)


class AdminFormEmbedTests(FormsApiBase):
    def test_embed_snippet(self):
        form = self._create_form()
        response = self.client.get(f"/api/admin/forms/{form['id']}/embed", headers=self._auth_headers(ROLE_MANAGER))
        self.assertEqual(response.status_code, 200)
        snippet = response.json()["snippet"]
        self.assertIn(f'id="serviceos-form-{form["id"]}"', snippet)
        self.assertIn(settings.embed_script_url, snippet)
        self.assertIn(f"window.renderServiceOSForm('{form['id']}', 'serviceos-form-{form['id']}')", snippet)

    def test_task_lists_cannot_be_embedded(self):
        form = self._create_form(task_list_payload())
        response = self.client.get(f"/api/admin/forms/{form['id']}/embed", headers=self._auth_headers(ROLE_ADMIN))
        self.assertEqual(response.status_code, 400)


class AdminTaskSubmissionTests(FormsApiBase):
    def test_staff_submits_task_list(self):
        form = self._create_form(task_list_payload())
        response = self.client.post(
            f"/api/admin/forms/{form['id']}/task-submissions",
            headers=self._auth_headers(ROLE_STAFF, email="staff@example.com"),
            json={
                "formData": {"task_t1_description": "Water the plants", "task_t1_completed": "Yes"},
                "associatedLeadId": "lead-42",
            },
        )
        self.assertEqual(response.status_code, 201, response.text)
        submission = response.json()["submission"]
        self.assertEqual(submission["channel"], "staff")
        self.assertEqual(submission["associated_lead_id"], "lead-42")
        self.assertEqual(
            submission["crm_data"]["task_items"],
            [{"id": "t1", "description": "Water the plants", "completed": "Yes", "reason": None}],
        )

        response = self.client.get(
            f"/api/admin/forms/{form['id']}/submissions",
            headers=self._auth_headers(ROLE_MANAGER),
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()["rows"]), 1)

    def test_reason_required_when_not_completed(self):
        form = self._create_form(task_list_payload())
        response = self.client.post(
            f"/api/admin/forms/{form['id']}/task-submissions",
            headers=self._auth_headers(ROLE_STAFF),
            json={"formData": {"task_t1_description": "Call supplier", "task_t1_completed": "No"}},
        )
        self.assertEqual(response.status_code, 400)
        errors = response.json()["detail"]["errors"]
        self.assertEqual(errors, {"task_t1_reason": "Reason if not completed is required."})

    def test_general_form_rejects_staff_submission(self):
        form = self._create_form()
        response = self.client.post(
            f"/api/admin/forms/{form['id']}/task-submissions",
            headers=self._auth_headers(ROLE_STAFF),
            json={"formData": {"email": "a@b.co"}},
        )
        self.assertEqual(response.status_code, 400)
