from marketplace.models.listing import ListingStatus

IMG = "https://img.test.local/{}.jpg"


def _payload(**kw):
    body = {
        "title": "Vintage camera",
        "description": "Works fine",
        "price": 250,
        "category": "Electronics",
        "condition": "used",
        "location": "Lisbon",
        "coverImage": IMG.format("cover"),
        "bannerImage": IMG.format("banner"),
        "galleryImages": [IMG.format("g1")],
    }
    body.update(kw)
    return body


def test_create_listing_requires_three_images(client, auth, make_user):
    seller = make_user()

    res = client.post("/api/listings", json=_payload(bannerImage=None, galleryImages=[IMG.format("g1")]), headers=auth(seller))
    assert res.status_code == 400
    assert res.json()["detail"] == "not_enough_images"

    res = client.post("/api/listings", json=_payload(), headers=auth(seller))
    assert res.status_code == 201
    body = res.json()
    assert body["userId"] == seller.id
    assert body["status"] == "active"
    assert body["galleryImages"] == [IMG.format("g1")]
    assert body["isOwner"] is True


def test_create_listing_rejects_bad_price(client, auth, make_user):
    seller = make_user()
    assert client.post("/api/listings", json=_payload(price=0), headers=auth(seller)).status_code == 422
    assert client.post("/api/listings", json=_payload(price=-3), headers=auth(seller)).status_code == 422


def test_search_filters(client, make_user, make_listing):
    seller = make_user()
    make_listing(seller, title="Red Road Bike", price=400, category="Sports", location="Berlin")
    make_listing(seller, title="Blue road bike", price=900, category="Sports", location="Munich")
    make_listing(seller, title="Desk lamp", price=20, category="Home", location="Berlin")
    make_listing(seller, title="Hidden bike", price=10, status=ListingStatus.HIDDEN)

    def titles(**params):
        return sorted(l["title"] for l in client.get("/api/listings", params=params).json()["data"])

    assert titles(q="BIKE") == ["Blue road bike", "Red Road Bike"]
    assert titles(category="home") == ["Desk lamp"]
    assert titles(location="berlin") == ["Desk lamp", "Red Road Bike"]
    # q 는 제목만 본다
    assert titles(q="munich") == []
    assert titles(q="bike", location="munich") == ["Blue road bike"]
    assert titles(minPrice=100, maxPrice=500) == ["Red Road Bike"]

    page = client.get("/api/listings", params={"size": 2, "page": 2}).json()
    assert page["total"] == 3
    assert len(page["data"]) == 1


def test_owner_only_edits(client, auth, make_user, make_listing):
    seller, stranger = make_user(), make_user()
    listing = make_listing(seller)

    res = client.patch(f"/api/listings/{listing.id}", json={"price": 99}, headers=auth(stranger))
    assert res.status_code == 403

    res = client.patch(f"/api/listings/{listing.id}", json={"price": 99, "title": "Cheaper bike"}, headers=auth(seller))
    assert res.status_code == 200
    assert res.json()["price"] == 99
    assert res.json()["title"] == "Cheaper bike"

    res = client.patch(
        f"/api/listings/{listing.id}", json={"bannerImage": None, "galleryImages": []}, headers=auth(seller)
    )
    assert res.status_code == 400


def test_status_toggle_and_hidden_visibility(client, auth, make_user, make_listing):
    seller, stranger = make_user(), make_user()
    listing = make_listing(seller)

    res = client.patch(f"/api/listings/{listing.id}/status", json={"status": "sold"}, headers=auth(seller))
    assert res.json()["status"] == "sold"

    client.patch(f"/api/listings/{listing.id}/status", json={"status": "hidden"}, headers=auth(seller))
    assert client.get(f"/api/listings/{listing.id}", headers=auth(stranger)).status_code == 404
    assert client.get(f"/api/listings/{listing.id}", headers=auth(seller)).status_code == 200
    assert client.get(f"/api/listings/user/{seller.id}").json() == []
    assert len(client.get(f"/api/listings/user/{seller.id}", headers=auth(seller)).json()) == 1


def test_delete_listing(client, auth, make_user, make_listing):
    seller = make_user()
    listing = make_listing(seller)
    assert client.delete(f"/api/listings/{listing.id}", headers=auth(make_user())).status_code == 403
    assert client.delete(f"/api/listings/{listing.id}", headers=auth(seller)).json() == {"listingId": listing.id}
    assert client.get(f"/api/listings/{listing.id}").status_code == 404
