"""Shared test data and fakes."""

PASSWORD = "secret123"

VALID_PERSONAL = {
    "full_name": "Asha Verma",
    "phone": "9876543210",
    "date_of_birth": "2006-04-12",
    "gender": "female",
    "address": "12 MG Road",
    "city": "Pune",
    "state": "Maharashtra",
    "pincode": "411001",
}
VALID_ACADEMIC = {
    "board_10th": "CBSE",
    "percentage_10th": "91.4",
    "year_10th": "2022",
    "board_12th": "CBSE",
    "percentage_12th": "88",
    "year_12th": "2024",
    "stream": "Science",
}
VALID_COURSE = {"course_name": "B.Tech Computer Science", "preferred_college": "Main Campus"}


class FakeNotifier:
    """Records sent requests; can be told to fail."""

    def __init__(self):
        self.sent = []
        self.error = None

    def send(self, req):
        if self.error:
            raise self.error
        self.sent.append(req)
        return f"msg-{len(self.sent)}"


class SteppingClock:
    """Millisecond clock that advances by 1 on every read."""

    def __init__(self, start=1_760_000_000_000):
        self.now = start

    def __call__(self):
        self.now += 1
        return self.now


def login(client, email, password=PASSWORD):
    r = client.post("/auth/token", data={"username": email, "password": password})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}
