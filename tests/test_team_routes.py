# tests/test_team_routes.py


class TestTeamStats:
    def test_admin_sees_every_member(self, client, admin_headers, member_user, other_member):
        body = client.get("/team", headers=admin_headers).get_json()
        assert sorted(m["name"] for m in body["members"]) == ["Ada Admin", "Otto Other", "Uma Member"]
        assert body["totals"]["team_members"] == 3
        assert body["totals"]["total"] == 0


class TestMembers:
    def test_members_sorted_by_name(self, client, member_headers, admin_user, other_member):
        names = [p["name"] for p in client.get("/team/members", headers=member_headers).get_json()]
        assert names == ["Ada Admin", "Otto Other", "Uma Member"]

    def test_filter_by_role(self, client, member_headers, admin_user):
        admins = client.get("/team/members?role=admin", headers=member_headers).get_json()
        assert [p["email"] for p in admins] == ["admin@example.com"]

    def test_bad_role(self, client, member_headers):
        assert client.get("/team/members?role=owner", headers=member_headers).status_code == 400


class TestAddMember:
    def test_admin_adds_member(self, client, db, admin_headers):
        resp = client.post("/team", json={
            "email": "New@Example.com", "password": "pw", "name": "Nia New",
        }, headers=admin_headers)
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["msg"] == "Nia New has been successfully added to the team"
        assert body["profile"]["role"] == "member"
        assert db.users.find_one({"email": "new@example.com"})["custom_claims"]["role"] == "member"

        login = client.post("/auth/login", json={"email": "new@example.com", "password": "pw"})
        assert login.status_code == 200

    def test_duplicate_email(self, client, admin_headers, member_user):
        resp = client.post("/team", json={
            "email": "uma@example.com", "password": "pw", "name": "Uma Again",
        }, headers=admin_headers)
        assert resp.status_code == 409
        assert resp.get_json() == {"error": "User already exists"}

    def test_missing_fields(self, client, admin_headers):
        assert client.post("/team", json={"email": "x@example.com"}, headers=admin_headers).status_code == 400

    def test_members_cannot_add(self, client, member_headers):
        resp = client.post("/team", json={
            "email": "x@example.com", "password": "pw", "name": "X",
        }, headers=member_headers)
        assert resp.status_code == 403
