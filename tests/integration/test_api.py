from app.db.models import AuditLog, Group, KnowledgeMode, UserRole
from app.services.audit_service import AuditActions


def test_login_returns_token(client, make_user, audit):
    make_user("alice", password="password123")

    response = client.post("/auth/token", data={"username": "alice", "password": "password123"})

    assert response.status_code == 200
    assert response.json()["token_type"] == "bearer"
    assert AuditActions.LOGIN in audit.actions()


def test_login_with_wrong_password(client, make_user):
    make_user("alice", password="password123")

    response = client.post("/auth/token", data={"username": "alice", "password": "nope"})

    assert response.status_code == 401


def test_me_lists_permissions(client, make_user, auth_headers):
    admin = make_user("root", role=UserRole.SUPER_ADMIN)

    response = client.get("/users/me", headers=auth_headers(admin))

    assert response.status_code == 200
    body = response.json()
    assert body["username"] == "root"
    assert "manage_settings" in body["permissions"]


def test_requests_without_token_are_rejected(client):
    assert client.post("/chat/message", json={"message": "hi"}).status_code == 401


def test_chat_uses_the_users_folders(client, make_user, make_folder, make_document, auth_headers, vector_store):
    user = make_user("alice")
    mine = make_folder("/mine", users=[user])
    hidden = make_folder("/hidden")
    make_document(mine, "Mine.txt", ["shared parking rules"])
    make_document(hidden, "Hidden.txt", ["secret parking rules"])

    response = client.post("/chat/message", json={"message": "parking rules"}, headers=auth_headers(user))

    assert response.status_code == 200
    body = response.json()
    assert body["mode"] == KnowledgeMode.HYBRID.value
    assert [s["document_name"] for s in body["sources"]] == ["Mine.txt"]
    assert vector_store.last_search["folder_ids"] == [mine.id]


def test_chat_round_trip(client, make_user, auth_headers):
    user = make_user("alice")
    headers = auth_headers(user)

    sent = client.post("/chat/message", json={"message": "Hello there"}, headers=headers).json()
    chat_id = sent["chat_id"]

    detail = client.get(f"/chat/{chat_id}", headers=headers)
    assert detail.status_code == 200
    assert [m["role"] for m in detail.json()["messages"]] == ["USER", "ASSISTANT"]

    feedback = client.post(
        f"/chat/{chat_id}/feedback",
        json={"message_id": sent["message_id"], "feedback": "POSITIVE"},
        headers=headers,
    )
    assert feedback.json()["feedback"] == "POSITIVE"

    renamed = client.put(f"/chat/{chat_id}", json={"title": "Greeting"}, headers=headers)
    assert renamed.json()["title"] == "Greeting"

    history = client.get("/history", headers=headers).json()
    assert history["pagination"]["total"] == 1
    assert history["chats"][0]["title"] == "Greeting"

    search = client.get("/history/search", params={"q": "hello"}, headers=headers).json()
    assert len(search) == 1

    export = client.post("/history/export", json={"format": "markdown"}, headers=headers).json()
    assert "Hello there" in export["content"]

    assert client.delete(f"/chat/{chat_id}", headers=headers).status_code == 204
    assert client.get(f"/chat/{chat_id}", headers=headers).status_code == 404


def test_validation_and_generation_errors_map_to_status_codes(client, make_user, auth_headers, provider):
    user = make_user("alice")
    headers = auth_headers(user)

    assert client.post("/chat/message", json={"message": "   "}, headers=headers).status_code == 400
    assert client.post("/chat/message", json={"message": "hi", "chat_id": "missing"}, headers=headers).status_code == 404

    provider.error = RuntimeError("upstream exploded")
    response = client.post("/chat/message", json={"message": "hi"}, headers=headers)
    assert response.status_code == 502


def test_new_chat(client, make_user, auth_headers):
    user = make_user("alice")

    response = client.post("/chat/new", json={}, headers=auth_headers(user))

    assert response.status_code == 200
    assert response.json()["title"] == "Neuer Chat"


def test_settings_permissions(client, make_user, auth_headers):
    user = make_user("alice")
    admin = make_user("admin", role=UserRole.ADMIN)
    root = make_user("root", role=UserRole.SUPER_ADMIN)

    assert client.get("/admin/settings", headers=auth_headers(user)).status_code == 403
    assert client.get("/admin/settings", headers=auth_headers(admin)).status_code == 200
    assert client.put("/admin/settings/rag", json={"top_k": 3}, headers=auth_headers(admin)).status_code == 403

    updated = client.put("/admin/settings/rag", json={"top_k": 3}, headers=auth_headers(root))
    assert updated.status_code == 200
    assert updated.json()["settings"]["rag"]["top_k"] == 3

    assert client.put("/admin/settings/billing", json={}, headers=auth_headers(root)).status_code == 400
    defaults = client.get("/admin/settings/defaults", headers=auth_headers(admin)).json()
    assert defaults["settings"]["rag"]["top_k"] == 10


def test_prompt_admin(client, make_user, auth_headers):
    admin = make_user("admin", role=UserRole.ADMIN)
    headers = auth_headers(admin)

    builtin = client.get("/admin/prompts/active/system", headers=headers).json()
    assert builtin["version"] == 0

    created = client.post(
        "/admin/prompts", json={"name": "company_system", "type": "SYSTEM", "content": "Be brief."}, headers=headers
    )
    assert created.status_code == 201
    prompt_id = created.json()["id"]

    updated = client.put(f"/admin/prompts/{prompt_id}", json={"content": "Be very brief."}, headers=headers).json()
    assert updated["version"] == 2
    assert client.get("/admin/prompts/active/system", headers=headers).json()["content"] == "Be very brief."

    duplicate = client.post(
        "/admin/prompts", json={"name": "company_system", "type": "SYSTEM", "content": "x"}, headers=headers
    )
    assert duplicate.status_code == 409
    assert client.delete(f"/admin/prompts/{prompt_id}", headers=headers).status_code == 204


def test_knowledge_admin_assigns_folders(client, db, make_user, auth_headers):
    admin = make_user("admin", role=UserRole.ADMIN)
    user = make_user("alice")
    headers = auth_headers(admin)

    folder = client.post("/admin/knowledge/folders", json={"name": "HR", "path": "/hr", "knowledge_mode": "RAG_ONLY"}, headers=headers)
    assert folder.status_code == 201
    folder_id = folder.json()["id"]

    assigned = client.post(f"/admin/knowledge/users/{user.id}/folders", json={"folder_id": folder_id}, headers=headers)
    assert assigned.json() == {"assigned": True}

    group = client.post("/admin/knowledge/groups", json={"name": "Staff"}, headers=headers).json()
    added = client.post(f"/admin/knowledge/users/{user.id}/groups", json={"group_id": group["id"]}, headers=headers)
    assert added.json() == {"added": True}
    assert db.query(Group).filter(Group.id == group["id"]).one().members[0].id == user.id

    folders = client.get("/users/me/folders", headers=auth_headers(user)).json()
    assert [f["path"] for f in folders] == ["/hr"]

    assert client.post("/admin/knowledge/folders", json={"name": "X", "path": "/x"}, headers=auth_headers(user)).status_code == 403


def test_admin_preview_uses_target_folders(client, make_user, make_folder, make_document, auth_headers, audit, vector_store):
    admin = make_user("admin", role=UserRole.ADMIN)
    target = make_user("alice")
    folder = make_folder("/alice", users=[target])
    make_document(folder, "Alice.txt", ["onboarding checklist"])

    response = client.post(
        "/admin/chat/preview",
        json={"message": "onboarding checklist", "preview_user_id": target.id},
        headers=auth_headers(admin),
    )

    assert response.status_code == 200
    assert vector_store.last_search["folder_ids"] == [folder.id]
    event = [e for e in audit.events if e["action"] == AuditActions.CHAT_MESSAGE][-1]
    assert event["actor_id"] == admin.id
    assert event["details"]["preview_user_id"] == target.id
    assert event["details"]["is_admin"] is True

    assert client.post(
        "/admin/chat/preview", json={"message": "x", "preview_user_id": target.id}, headers=auth_headers(target)
    ).status_code == 403


def test_folder_deletion_endpoint(client, make_user, make_folder, make_document, auth_headers, audit, vector_store):
    admin = make_user("admin", role=UserRole.ADMIN)
    user = make_user("alice")
    folder = make_folder("/old", users=[user])
    make_document(folder, "Old.txt", ["outdated rules"])
    folder_id = folder.id

    assert client.delete(f"/admin/knowledge/folders/{folder_id}", headers=auth_headers(user)).status_code == 403
    assert client.delete(f"/admin/knowledge/folders/{folder_id}", headers=auth_headers(admin)).status_code == 204
    assert client.delete(f"/admin/knowledge/folders/{folder_id}", headers=auth_headers(admin)).status_code == 404

    assert vector_store.points == {}
    assert client.get("/users/me/folders", headers=auth_headers(user)).json() == []
    assert AuditActions.FOLDER_DELETE in audit.actions()


def test_audit_log_endpoints(client, db, make_user, auth_headers):
    user = make_user("alice")
    admin = make_user("admin", role=UserRole.ADMIN)
    db.add_all([
        AuditLog(user_id=user.id, action=AuditActions.LOGIN, entity_type="USER", entity_id=user.id),
        AuditLog(user_id=admin.id, action=AuditActions.FOLDER_CREATE, entity_type="FOLDER", entity_id="f1"),
    ])
    db.commit()
    headers = auth_headers(admin)

    assert client.get("/admin/audit", headers=auth_headers(user)).status_code == 403

    listing = client.get("/admin/audit", params={"action": AuditActions.LOGIN}, headers=headers).json()
    assert [log["username"] for log in listing["logs"]] == ["alice"]
    assert listing["pagination"]["total"] == 1

    actions = client.get("/admin/audit/actions", headers=headers).json()
    assert actions == {"actions": [AuditActions.FOLDER_CREATE, AuditActions.LOGIN]}
    entity_types = client.get("/admin/audit/entity-types", headers=headers).json()
    assert entity_types == {"entity_types": ["FOLDER", "USER"]}

    exported = client.get("/admin/audit/export", params={"format": "csv"}, headers=headers).json()
    assert exported["format"] == "csv"
    assert exported["content"].startswith('"ID","Timestamp"')
    assert client.get("/admin/audit/export", params={"format": "xml"}, headers=headers).status_code == 422
