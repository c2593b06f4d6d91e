import random
import uuid

from locust import HttpUser, between, task


class BlogUser(HttpUser):
    # Short waits: reads dominate, writes invalidate the list caches
    wait_time = between(0, 1)

    def on_start(self):
        name = f"load_{uuid.uuid4().hex[:12]}"
        response = self.client.post(
            "/api/registration",
            json={"username": name, "email": f"{name}@example.com", "password": "password123"},
        )
        token = response.json().get("token")
        self.client.headers["Authorization"] = f"Bearer {token}"
        self.post_ids = []

    @task(10)
    def list_posts(self):
        page = random.randint(1, 5)
        with self.client.get(
            f"/api/posts?page={page}&limit=10", name="/api/posts", catch_response=True
        ) as response:
            if response.status_code == 200:
                self.post_ids = [post["id"] for post in response.json()["posts"]] or self.post_ids
                response.success()
            else:
                response.failure(f"Status code: {response.status_code}")

    @task(5)
    def show_post(self):
        if not self.post_ids:
            return
        post_id = random.choice(self.post_ids)
        self.client.get(f"/api/posts/{post_id}", name="/api/posts/[id]")

    @task(3)
    def list_comments(self):
        if not self.post_ids:
            return
        post_id = random.choice(self.post_ids)
        self.client.get(f"/api/posts/{post_id}/comments", name="/api/posts/[id]/comments")

    @task(1)
    def create_post(self):
        response = self.client.post(
            "/api/posts",
            json={"title": "Load test post", "content": "Written by the load test user."},
        )
        if response.status_code == 201:
            self.post_ids.append(response.json()["id"])

    @task(1)
    def comment(self):
        if not self.post_ids:
            return
        post_id = random.choice(self.post_ids)
        self.client.post(
            f"/api/posts/{post_id}/comments",
            json={"content": "Load test comment"},
            name="/api/posts/[id]/comments",
        )
