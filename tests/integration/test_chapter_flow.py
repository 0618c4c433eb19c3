import uuid

from fastapi.testclient import TestClient
from sqlalchemy import func
from sqlalchemy.orm import Session

from storyloom.models.book import Book
from storyloom.models.chapter import Chapter, ChapterSuggestion


def assert_book_totals_match_chapters(db: Session, book_id: str):
    """Cached book totals equal the aggregate over its chapters."""
    db.expire_all()
    book = db.query(Book).filter(Book.id == uuid.UUID(book_id)).one()
    count, words = (
        db.query(func.count(Chapter.id), func.coalesce(func.sum(Chapter.word_count), 0))
        .filter(Chapter.book_id == book.id)
        .one()
    )
    assert book.total_chapters == count
    assert book.total_words == words
    return book


class TestChapterCrud:
    def test_create_chapter_counts_words(self, client: TestClient, auth_headers, chapters_url):
        response = client.post(
            chapters_url,
            json={"title": "Prologue", "content": "  Once upon a time  "},
            headers=auth_headers,
        )
        assert response.status_code == 201
        chapter = response.json()["data"]["chapter"]
        assert chapter["chapterNumber"] == 1
        assert chapter["content"] == "Once upon a time"
        assert chapter["wordCount"] == 4
        assert chapter["readingTime"] == 1
        assert chapter["status"] == "draft"
        assert chapter["suggestions"] == []

    def test_chapter_numbers_auto_increment(self, client: TestClient, auth_headers, chapters_url):
        numbers = []
        for title in ("One", "Two", "Three"):
            response = client.post(chapters_url, json={"title": title}, headers=auth_headers)
            numbers.append(response.json()["data"]["chapter"]["chapterNumber"])
        assert numbers == [1, 2, 3]

    def test_auto_number_follows_highest(self, client: TestClient, auth_headers, chapters_url):
        client.post(chapters_url, json={"title": "Late", "chapterNumber": 7}, headers=auth_headers)
        response = client.post(chapters_url, json={"title": "Later"}, headers=auth_headers)
        assert response.json()["data"]["chapter"]["chapterNumber"] == 8

    def test_duplicate_chapter_number_conflicts(
        self, client: TestClient, auth_headers, chapters_url
    ):
        client.post(chapters_url, json={"title": "First", "chapterNumber": 1}, headers=auth_headers)
        response = client.post(
            chapters_url, json={"title": "Also first", "chapterNumber": 1}, headers=auth_headers
        )
        assert response.status_code == 409
        assert response.json()["message"] == "Chapter 1 already exists for this book"

    def test_invalid_chapter_number(self, client: TestClient, auth_headers, chapters_url):
        for value, message in [
            (0, "Chapter number must be greater than 0"),
            (10000, "Chapter number must be less than 10000"),
            ("abc", "Chapter number must be a valid number"),
            (2.5, "Chapter number must be a valid number"),
        ]:
            response = client.post(
                chapters_url, json={"title": "Numbered", "chapterNumber": value}, headers=auth_headers
            )
            assert response.status_code == 400, value
            assert response.json()["errors"] == [message]

    def test_missing_title(self, client: TestClient, auth_headers, chapters_url):
        response = client.post(chapters_url, json={"content": "text"}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["errors"] == ["Chapter title is required"]

    def test_list_chapters_in_order(self, client: TestClient, auth_headers, book, chapters_url):
        client.post(chapters_url, json={"title": "Third", "chapterNumber": 3}, headers=auth_headers)
        client.post(chapters_url, json={"title": "First", "chapterNumber": 1}, headers=auth_headers)

        response = client.get(chapters_url, headers=auth_headers)
        data = response.json()["data"]
        assert [c["title"] for c in data["chapters"]] == ["First", "Third"]
        assert data["bookInfo"] == {"id": book["id"], "title": book["title"], "totalChapters": 2}

        response = client.get(f"{chapters_url}?limit=1&offset=1", headers=auth_headers)
        assert [c["title"] for c in response.json()["data"]["chapters"]] == ["Third"]

    def test_update_chapter(self, client: TestClient, auth_headers, chapters_url):
        created = client.post(
            chapters_url, json={"title": "Draft", "content": "one two"}, headers=auth_headers
        ).json()["data"]["chapter"]

        response = client.put(
            f"{chapters_url}/{created['id']}",
            json={"content": "one two three four five", "status": "Written"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        chapter = response.json()["data"]["chapter"]
        assert chapter["title"] == "Draft"
        assert chapter["wordCount"] == 5
        assert chapter["status"] == "written"

    def test_renumber_collision(self, client: TestClient, auth_headers, chapters_url):
        client.post(chapters_url, json={"title": "One"}, headers=auth_headers)
        second = client.post(chapters_url, json={"title": "Two"}, headers=auth_headers).json()[
            "data"
        ]["chapter"]

        response = client.put(
            f"{chapters_url}/{second['id']}", json={"chapterNumber": 1}, headers=auth_headers
        )
        assert response.status_code == 409
        assert response.json()["message"] == "Chapter 1 already exists"

        response = client.put(
            f"{chapters_url}/{second['id']}", json={"chapterNumber": 5}, headers=auth_headers
        )
        assert response.status_code == 200
        assert response.json()["data"]["chapter"]["chapterNumber"] == 5

    def test_update_with_invalid_status(self, client: TestClient, auth_headers, chapters_url):
        created = client.post(chapters_url, json={"title": "Draft"}, headers=auth_headers).json()[
            "data"
        ]["chapter"]
        response = client.put(
            f"{chapters_url}/{created['id']}", json={"status": "lost"}, headers=auth_headers
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid status"

    def test_chapter_from_other_book_is_not_found(
        self, client: TestClient, auth_headers, chapters_url
    ):
        chapter = client.post(chapters_url, json={"title": "Mine"}, headers=auth_headers).json()[
            "data"
        ]["chapter"]
        other_book = client.post(
            "/api/books", json={"title": "Other Book"}, headers=auth_headers
        ).json()["data"]["book"]

        response = client.get(
            f"/api/chapters/books/{other_book['id']}/chapters/{chapter['id']}",
            headers=auth_headers,
        )
        assert response.status_code == 404
        assert response.json()["message"] == "Chapter not found"


class TestBookStatisticsInvariant:
    def test_totals_follow_every_mutation(
        self, client: TestClient, auth_headers, book, chapters_url, db: Session
    ):
        first = client.post(
            chapters_url, json={"title": "One", "content": "a b c"}, headers=auth_headers
        ).json()["data"]["chapter"]
        book_row = assert_book_totals_match_chapters(db, book["id"])
        assert (book_row.total_chapters, book_row.total_words) == (1, 3)

        second = client.post(
            chapters_url, json={"title": "Two", "content": "d e f g"}, headers=auth_headers
        ).json()["data"]["chapter"]
        book_row = assert_book_totals_match_chapters(db, book["id"])
        assert (book_row.total_chapters, book_row.total_words) == (2, 7)

        client.put(f"{chapters_url}/{first['id']}", json={"content": "a"}, headers=auth_headers)
        book_row = assert_book_totals_match_chapters(db, book["id"])
        assert book_row.total_words == 5

        client.delete(f"{chapters_url}/{second['id']}", headers=auth_headers)
        book_row = assert_book_totals_match_chapters(db, book["id"])
        assert (book_row.total_chapters, book_row.total_words) == (1, 1)

        response = client.get(f"/api/books/{book['id']}", headers=auth_headers)
        data = response.json()["data"]["book"]
        assert data["totalChapters"] == 1
        assert data["totalWords"] == 1
        assert data["progress"] == 10

    def test_failed_create_leaves_totals_untouched(
        self, client: TestClient, auth_headers, book, chapters_url, db: Session
    ):
        client.post(
            chapters_url, json={"title": "One", "content": "a b", "chapterNumber": 1},
            headers=auth_headers,
        )
        client.post(
            chapters_url, json={"title": "Dup", "content": "c d e", "chapterNumber": 1},
            headers=auth_headers,
        )
        book_row = assert_book_totals_match_chapters(db, book["id"])
        assert (book_row.total_chapters, book_row.total_words) == (1, 2)

    def test_delete_chapter(self, client: TestClient, auth_headers, chapters_url):
        chapter = client.post(chapters_url, json={"title": "Gone"}, headers=auth_headers).json()[
            "data"
        ]["chapter"]
        response = client.delete(f"{chapters_url}/{chapter['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["message"] == "Chapter deleted successfully"
        assert client.get(f"{chapters_url}/{chapter['id']}", headers=auth_headers).status_code == 404


class TestSuggestions:
    def test_apply_suggestion(
        self, client: TestClient, auth_headers, chapters_url, db: Session
    ):
        chapter = client.post(chapters_url, json={"title": "Hints"}, headers=auth_headers).json()[
            "data"
        ]["chapter"]
        suggestion = ChapterSuggestion(
            chapter_id=uuid.UUID(chapter["id"]), position=0, text="Add a storm", applied=False
        )
        db.add(suggestion)
        db.commit()

        response = client.post(
            f"{chapters_url}/{chapter['id']}/suggestions/{suggestion.id}/apply",
            headers=auth_headers,
        )
        assert response.status_code == 200
        data = response.json()["data"]["chapter"]
        assert data["aiEnhanced"] is True
        assert data["suggestions"][0]["text"] == "Add a storm"
        assert data["suggestions"][0]["applied"] is True

    def test_apply_unknown_suggestion(self, client: TestClient, auth_headers, chapters_url):
        chapter = client.post(chapters_url, json={"title": "Hints"}, headers=auth_headers).json()[
            "data"
        ]["chapter"]
        response = client.post(
            f"{chapters_url}/{chapter['id']}/suggestions/{uuid.uuid4()}/apply",
            headers=auth_headers,
        )
        assert response.status_code == 404
        assert response.json()["message"] == "Suggestion not found"
