"""Tests for reviews and product rating aggregation."""

import pytest

from errors import AlreadyReviewedError, ProductNotFoundError
from reviews import create_review, delete_review, list_reviews, update_review_status


def product_rating(db, product):
    stored = db["product"].find_one({"_id": product["_id"]})
    return stored["average_rating"], stored["rating_count"]


def test_one_review_per_customer(db, customer, make_product):
    product = make_product()
    create_review(db, customer, str(product["_id"]), "Great", 5)
    with pytest.raises(AlreadyReviewedError):
        create_review(db, customer, str(product["_id"]), "Still great", 4)


def test_unknown_product(db, customer):
    with pytest.raises(ProductNotFoundError):
        create_review(db, customer, "000000000000000000000000", "Hmm", 3)


def test_held_reviews_do_not_count(db, customer, make_product):
    product = make_product()
    review = create_review(db, customer, str(product["_id"]), "Nice", 4)

    assert review["status"] == "hold"
    assert product_rating(db, product) == (0, 0)

    update_review_status(db, str(review["_id"]), "approved")
    assert product_rating(db, product) == (4, 1)


def test_average_rounded_to_one_decimal(db, make_user, make_product):
    product = make_product()
    for n, rating in enumerate((5, 4, 4)):
        create_review(db, make_user(f"reviewer{n}"), str(product["_id"]), "ok", rating, status="approved")

    assert product_rating(db, product) == (4.3, 3)


def test_deleting_only_approved_review_resets_rating(db, customer, make_product):
    product = make_product()
    review = create_review(db, customer, str(product["_id"]), "Nice", 2, status="approved")
    assert product_rating(db, product) == (2, 1)

    delete_review(db, str(review["_id"]))
    assert product_rating(db, product) == (0, 0)


def test_spam_status_removes_from_average(db, make_user, make_product):
    product = make_product()
    good = create_review(db, make_user("alice"), str(product["_id"]), "Love it", 5, status="approved")
    create_review(db, make_user("bob"), str(product["_id"]), "Buy cheap stuff here", 1, status="approved")
    assert product_rating(db, product) == (3, 2)

    bad = list_reviews(db, product_id=str(product["_id"]))[0]
    bad = next(r for r in bad if r["_id"] != good["_id"])
    update_review_status(db, str(bad["_id"]), "spam")
    assert product_rating(db, product) == (5, 1)


def test_reviewer_name(db, customer, make_product):
    review = create_review(db, customer, str(make_product()["_id"]), "Fine", 3)
    assert review["reviewer"] == "John Doe"
    assert review["reviewer_email"] == "johndoe@example.com"
