"""
Load testing script for the Payment Ledger Service using Locust.

Run with:
    locust -f locustfile.py --host=http://localhost:8000 --headless -u 100 -r 10 -t 60s

Parameters:
    -u: Number of concurrent users
    -r: Spawn rate (users per second)
    -t: Test duration
"""

from locust import HttpUser, task, between
import random
import uuid


class PaymentServiceUser(HttpUser):
    """
    Simulates a user paying fees and following a payment through the gateway.

    Task weights determine request distribution:
    - 40% bid fees followed by a gateway webhook
    - 25% payment history reads
    - 15% withdrawals
    - 10% subscription status checks
    - 5% listing fees
    - 5% health checks
    """

    # Wait 1-3 seconds between requests per user
    wait_time = between(1, 3)

    def on_start(self):
        """Pick a random subject id for this simulated user"""
        self.subject_id = f"load-user-{random.randint(10000, 99999)}"

    @task(40)
    def bid_fee_and_webhook(self):
        """Create a bid fee, attach an order, then deliver payment.captured"""
        response = self.client.post(
            "/api/v1/payments/bid-fee",
            json={
                "idempotency_key": str(uuid.uuid4()),
                "subject_id": self.subject_id,
                "project_id": f"project-{random.randint(1, 50)}",
            },
            name="/api/v1/payments/bid-fee"
        )
        if response.status_code != 201:
            return

        payment_id = response.json()["payment_id"]
        order_id = f"order_{uuid.uuid4().hex[:16]}"
        self.client.post(
            f"/api/v1/payments/{payment_id}/order",
            json={"order_id": order_id},
            name="/api/v1/payments/:payment_id/order"
        )
        self.client.post(
            "/api/v1/webhooks/razorpay",
            json={
                "id": f"evt_{uuid.uuid4().hex}",
                "event": random.choice(["payment.captured", "payment.failed"]),
                "payload": {"payment": {"entity": {"id": f"pay_{uuid.uuid4().hex[:14]}", "order_id": order_id}}},
            },
            name="/api/v1/webhooks/razorpay"
        )

    @task(25)
    def payment_history(self):
        self.client.get(
            f"/api/v1/payments/history/{self.subject_id}?limit=10",
            name="/api/v1/payments/history/:subject_id"
        )

    @task(15)
    def withdrawal(self):
        """Includes out-of-range amounts, which should come back 400"""
        with self.client.post(
            "/api/v1/payments/withdrawal",
            json={
                "idempotency_key": str(uuid.uuid4()),
                "subject_id": self.subject_id,
                "amount": random.randint(50, 12000),
            },
            name="/api/v1/payments/withdrawal",
            catch_response=True
        ) as response:
            if response.status_code in (201, 400):
                response.success()

    @task(10)
    def subscription_status(self):
        self.client.get(
            f"/api/v1/payments/subscription/{self.subject_id}",
            name="/api/v1/payments/subscription/:subject_id"
        )

    @task(5)
    def listing_fee(self):
        self.client.post(
            "/api/v1/payments/listing",
            json={
                "idempotency_key": str(uuid.uuid4()),
                "subject_id": self.subject_id,
                "project_id": f"project-{random.randint(1, 50)}",
            },
            name="/api/v1/payments/listing"
        )

    @task(5)
    def health_check(self):
        """Hit health endpoint (5% of requests)"""
        self.client.get("/health", name="/health")
