from smartmarks.models import Bookmark


def test_add_from_form_flashes_and_lists(client, app, make_user, web_login):
    user_id, _ = make_user("alice")
    web_login(user_id)

    response = client.post(
        "/bookmarks",
        data={"title": "Flask", "url": "www.flask.example/docs"},
        follow_redirects=True,
    )

    assert response.status_code == 200
    assert b"Bookmark added!" in response.data
    assert b"https://www.flask.example/docs" in response.data
    assert b"flask.example" in response.data
    with app.app_context():
        assert Bookmark.query.filter_by(user_id=user_id).count() == 1


def test_add_from_form_shows_validation_message(client, app, make_user, web_login):
    user_id, _ = make_user("alice")
    web_login(user_id)

    response = client.post(
        "/bookmarks",
        data={"title": "Broken", "url": "http://"},
        follow_redirects=True,
    )

    assert b"Please enter a valid URL." in response.data
    assert b'value="Broken"' in response.data
    with app.app_context():
        assert Bookmark.query.count() == 0


def test_delete_from_form(client, app, make_user, web_login):
    user_id, token = make_user("alice")
    web_login(user_id)
    created = client.post(
        "/api/v1/bookmarks",
        headers={"Authorization": f"Bearer {token}"},
        json={"title": "Gone soon", "url": "gone.example"},
    ).get_json()

    response = client.post(
        f"/bookmarks/{created['id']}/delete", follow_redirects=True
    )

    assert b"Deleted." in response.data
    with app.app_context():
        assert Bookmark.query.count() == 0

    response = client.post(
        f"/bookmarks/{created['id']}/delete", follow_redirects=True
    )
    assert b"Bookmark not found." in response.data


def test_live_listing_includes_display_fields(client, make_user, web_login):
    user_id, _ = make_user("alice")
    web_login(user_id)
    client.post("/bookmarks", data={"title": "Py", "url": "www.python.org"})

    payload = client.get("/bookmarks/live").get_json()

    assert payload["total"] == 1
    item = payload["items"][0]
    assert item["host"] == "python.org"
    assert item["favicon_url"].endswith("domain=python.org&sz=64")


def test_live_listing_carries_working_delete_action(client, app, make_user, web_login):
    user_id, _ = make_user("alice")
    web_login(user_id)
    client.post("/bookmarks", data={"title": "Py", "url": "python.org"})

    item = client.get("/bookmarks/live").get_json()["items"][0]
    assert item["delete_url"] == f"/bookmarks/{item['id']}/delete"

    page = client.get("/").get_data(as_text=True)
    assert f'action="{item["delete_url"]}"' in page
    # live re-renders build the same Delete form from the payload
    assert "form.action = item.delete_url" in page

    response = client.post(item["delete_url"], follow_redirects=True)
    assert b"Deleted." in response.data
    assert client.get("/bookmarks/live").get_json() == {"items": [], "total": 0}
    with app.app_context():
        assert Bookmark.query.count() == 0


def test_empty_collection_shows_placeholder(client, make_user, web_login):
    user_id, _ = make_user("alice")
    web_login(user_id)

    page = client.get("/").get_data(as_text=True)

    assert "No bookmarks yet." in page
    assert "0 total" in page
