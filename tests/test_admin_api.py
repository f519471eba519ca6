async def test_admin_routes_require_admin(client, make_user):
    _, headers = await make_user(role="employer")
    response = await client.get("/api/admin/users", headers=headers)
    assert response.status_code == 403
    assert response.json() == {"error": "Admin access required"}


async def test_admin_role_is_read_from_the_database(client, db, make_user):
    admin, headers = await make_user(role="admin")
    await db.users.update_one({"_id": admin["_id"]}, {"$set": {"role": "job_seeker"}})

    response = await client.get("/api/admin/users", headers=headers)
    assert response.status_code == 403


async def test_list_users_with_filters(client, make_user):
    _, headers = await make_user(role="admin")
    await make_user(role="employer", email="e1@example.com")
    await make_user(role="employer", email="e2@example.com", is_active=False)
    await make_user(role="job_seeker", email="s1@example.com")

    body = (await client.get("/api/admin/users", headers=headers)).json()
    assert body["success"] is True
    assert body["pagination"] == {"page": 1, "limit": 20, "total": 4, "totalPages": 1}
    assert all("password_hash" not in u for u in body["users"])

    employers = (await client.get("/api/admin/users", params={"role": "employer"}, headers=headers)).json()
    assert {u["email"] for u in employers["users"]} == {"e1@example.com", "e2@example.com"}

    inactive = (await client.get("/api/admin/users", params={"status": "inactive"}, headers=headers)).json()
    assert [u["email"] for u in inactive["users"]] == ["e2@example.com"]

    paged = (await client.get("/api/admin/users", params={"limit": 3, "page": 2}, headers=headers)).json()
    assert len(paged["users"]) == 1
    assert paged["pagination"]["totalPages"] == 2


async def test_update_user_status(client, make_user):
    _, headers = await make_user(role="admin")
    target, _ = await make_user(role="employer", email="target@example.com")
    url = f"/api/admin/users/{target['_id']}/status"

    response = await client.put(url, json={"is_active": "no"}, headers=headers)
    assert response.status_code == 400

    response = await client.put(url, json={"is_active": False}, headers=headers)
    assert response.status_code == 200
    assert response.json()["user"]["is_active"] is False

    login = await client.post("/api/auth/login", json={"email": "target@example.com", "password": "secret123"})
    assert login.status_code == 403


async def test_update_status_of_missing_user(client, make_user):
    _, headers = await make_user(role="admin")
    response = await client.put(
        "/api/admin/users/000000000000000000000000/status", json={"is_active": True}, headers=headers
    )
    assert response.status_code == 404


async def test_admin_cannot_delete_self(client, make_user):
    admin, headers = await make_user(role="admin")
    response = await client.delete(f"/api/admin/users/{admin['_id']}", headers=headers)
    assert response.status_code == 400
    assert response.json() == {"error": "Cannot delete your own account"}


async def test_delete_user(client, db, make_user):
    _, headers = await make_user(role="admin")
    target, _ = await make_user(role="job_seeker", email="bye@example.com")

    response = await client.delete(f"/api/admin/users/{target['_id']}", headers=headers)
    assert response.status_code == 200
    assert await db.users.find_one({"_id": target["_id"]}) is None

    again = await client.delete(f"/api/admin/users/{target['_id']}", headers=headers)
    assert again.status_code == 404
    assert again.json() == {"error": "User not found"}
