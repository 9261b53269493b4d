"""
client/resources.py -- One class per REST resource of the rental API.

Methods return the decoded JSON body unchanged. Record shapes belong to the
API; screens pick the fields they render.

    api = RentalAPI(APIClient(settings.api_url, session, token_store))
    payments = api.payments.list()
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Optional

from client.http import APIClient, segment

Params = Optional[Mapping[str, Any]]


class _Resource:
    def __init__(self, client: APIClient) -> None:
        self._client = client


class ApartmentsAPI(_Resource):
    def list(self) -> Any:
        return self._client.get("/apartments")

    def get(self, apartment_id: str) -> Any:
        return self._client.get(f"/apartments/{segment(apartment_id)}")

    def create(self, data: Mapping) -> Any:
        return self._client.post("/apartments", data)

    def update(self, apartment_id: str, data: Mapping) -> Any:
        return self._client.put(f"/apartments/{segment(apartment_id)}", data)

    def delete(self, apartment_id: str) -> Any:
        return self._client.delete(f"/apartments/{segment(apartment_id)}")


class HousesAPI(_Resource):
    def list(self, apartment_id: Optional[str] = None) -> Any:
        return self._client.get("/houses", params={"apartment": apartment_id})

    def get(self, house_id: str) -> Any:
        return self._client.get(f"/houses/{segment(house_id)}")

    def by_apartment(self, apartment_id: str) -> Any:
        return self._client.get(f"/houses/apartment/{segment(apartment_id)}")

    def create(self, data: Mapping) -> Any:
        return self._client.post("/houses", data)

    def update(self, house_id: str, data: Mapping) -> Any:
        return self._client.put(f"/houses/{segment(house_id)}", data)

    def delete(self, house_id: str) -> Any:
        return self._client.delete(f"/houses/{segment(house_id)}")

    def assign_tenant(self, house_id: str, tenant_id: str) -> Any:
        return self._client.post(f"/houses/{segment(house_id)}/assign-tenant", {"tenantId": tenant_id})

    def remove_tenant(self, house_id: str) -> Any:
        return self._client.post(f"/houses/{segment(house_id)}/remove-tenant")

    def occupancy_analytics(self) -> Any:
        return self._client.get("/houses/analytics/occupancy")


class TenantsAPI(_Resource):
    def list(self) -> Any:
        return self._client.get("/tenants")

    def get(self, tenant_id: str) -> Any:
        return self._client.get(f"/tenants/{segment(tenant_id)}")

    def create(self, data: Mapping) -> Any:
        return self._client.post("/tenants", data)

    def update(self, tenant_id: str, data: Mapping) -> Any:
        return self._client.put(f"/tenants/{segment(tenant_id)}", data)

    def delete(self, tenant_id: str) -> Any:
        return self._client.delete(f"/tenants/{segment(tenant_id)}")

    def add_document(self, tenant_id: str, data: Mapping) -> Any:
        return self._client.post(f"/tenants/{segment(tenant_id)}/documents", data)

    def delete_document(self, tenant_id: str, document_id: str) -> Any:
        return self._client.delete(f"/tenants/{segment(tenant_id)}/documents/{segment(document_id)}")

    def add_communication(self, tenant_id: str, data: Mapping) -> Any:
        return self._client.post(f"/tenants/{segment(tenant_id)}/communication", data)


class PaymentsAPI(_Resource):
    def list(self) -> Any:
        return self._client.get("/payments")

    def get(self, payment_id: str) -> Any:
        return self._client.get(f"/payments/{segment(payment_id)}")

    def by_tenant(self, tenant_id: str) -> Any:
        return self._client.get(f"/payments/tenant/{segment(tenant_id)}")

    def by_house(self, house_id: str) -> Any:
        return self._client.get(f"/payments/house/{segment(house_id)}")

    def by_apartment(self, apartment_id: str) -> Any:
        return self._client.get(f"/payments/apartment/{segment(apartment_id)}")

    def create(self, data: Mapping) -> Any:
        return self._client.post("/payments", data)

    def update(self, payment_id: str, data: Mapping) -> Any:
        return self._client.put(f"/payments/{segment(payment_id)}", data)

    def delete(self, payment_id: str) -> Any:
        return self._client.delete(f"/payments/{segment(payment_id)}")

    def generate_monthly_rent(self, data: Mapping) -> Any:
        return self._client.post("/payments/generate-monthly-rent", data)

    def check_overdue(self, data: Mapping) -> Any:
        return self._client.post("/payments/check-overdue", data)

    def receive(self, data: Mapping) -> Any:
        return self._client.post("/payments/receive", data)

    def receive_paybill(self, data: Mapping) -> Any:
        return self._client.post("/payments/paybill", data)

    def search_house(self, house_number: str) -> Any:
        return self._client.get(f"/payments/search/house/{segment(house_number)}")

    def revenue_trend(self, months: int = 6) -> Any:
        return self._client.get("/payments/analytics/revenue-trend", params={"months": months})

    def payment_status(self, months: int = 6) -> Any:
        return self._client.get("/payments/analytics/payment-status", params={"months": months})


class ConfigAPI(_Resource):
    def get(self) -> Any:
        return self._client.get("/config")

    def update(self, data: Mapping) -> Any:
        return self._client.put("/config", data)

    def paybill_info(self) -> Any:
        return self._client.get("/config/paybill")


class MpesaAPI(_Resource):
    def stk_push(self, data: Mapping) -> Any:
        return self._client.post("/mpesa/stk-push", data)

    def query_status(self, checkout_request_id: str) -> Any:
        return self._client.get(f"/mpesa/status/{segment(checkout_request_id)}")


class EquityBankAPI(_Resource):
    def verify_account(self, account_number: str) -> Any:
        return self._client.get(f"/equity-bank/verify-account/{segment(account_number)}")

    def manual_payment(self, data: Mapping) -> Any:
        return self._client.post("/equity-bank/manual-payment", data)


class MaintenanceAPI(_Resource):
    def list(self, params: Params = None) -> Any:
        return self._client.get("/maintenance", params=params)

    def get(self, request_id: str) -> Any:
        return self._client.get(f"/maintenance/{segment(request_id)}")

    def create(self, data: Mapping) -> Any:
        return self._client.post("/maintenance", data)

    def update(self, request_id: str, data: Mapping) -> Any:
        return self._client.put(f"/maintenance/{segment(request_id)}", data)

    def delete(self, request_id: str) -> Any:
        return self._client.delete(f"/maintenance/{segment(request_id)}")


class ExpensesAPI(_Resource):
    def list(self, params: Params = None) -> Any:
        return self._client.get("/expenses", params=params)

    def get(self, expense_id: str) -> Any:
        return self._client.get(f"/expenses/{segment(expense_id)}")

    def by_apartment(self, apartment_id: str) -> Any:
        return self._client.get(f"/expenses/apartment/{segment(apartment_id)}")

    def create(self, data: Mapping) -> Any:
        return self._client.post("/expenses", data)

    def update(self, expense_id: str, data: Mapping) -> Any:
        return self._client.put(f"/expenses/{segment(expense_id)}", data)

    def delete(self, expense_id: str) -> Any:
        return self._client.delete(f"/expenses/{segment(expense_id)}")

    def summary(self, params: Params = None) -> Any:
        return self._client.get("/expenses/summary/totals", params=params)


class ReportsAPI(_Resource):
    def income_statement(self, params: Params = None) -> Any:
        return self._client.get("/reports/income-statement", params=params)

    def tenant_ledger(self, tenant_id: str, params: Params = None) -> Any:
        return self._client.get(f"/reports/tenant-ledger/{segment(tenant_id)}", params=params)

    def outstanding_balances(self, params: Params = None) -> Any:
        return self._client.get("/reports/outstanding-balances", params=params)

    def revenue_by_apartment(self, params: Params = None) -> Any:
        return self._client.get("/reports/revenue-by-apartment", params=params)


class ActivityLogsAPI(_Resource):
    def list(self, params: Params = None) -> Any:
        return self._client.get("/activity-logs", params=params)

    def get(self, log_id: str) -> Any:
        return self._client.get(f"/activity-logs/{segment(log_id)}")

    def statistics(self, params: Params = None) -> Any:
        return self._client.get("/activity-logs/statistics", params=params)

    def cleanup(self, days: int) -> Any:
        return self._client.delete("/activity-logs/cleanup", params={"days": days})


class AuthAPI(_Resource):
    def login(self, email: str, password: str) -> Any:
        return self._client.post("/auth/login", {"email": email, "password": password})

    def register(self, data: Mapping) -> Any:
        return self._client.post("/auth/register", data)

    def me(self) -> Any:
        return self._client.get("/auth/me")

    def update_profile(self, data: Mapping) -> Any:
        return self._client.put("/auth/profile", data)

    def users(self) -> Any:
        return self._client.get("/auth/users")

    def update_user(self, user_id: str, data: Mapping) -> Any:
        return self._client.put(f"/auth/users/{segment(user_id)}", data)

    def delete_user(self, user_id: str) -> Any:
        return self._client.delete(f"/auth/users/{segment(user_id)}")

    def logout(self) -> Any:
        return self._client.post("/auth/logout")


class RentalAPI:
    """Every resource group, sharing one APIClient."""

    def __init__(self, client: APIClient) -> None:
        self.client = client
        self.apartments = ApartmentsAPI(client)
        self.houses = HousesAPI(client)
        self.tenants = TenantsAPI(client)
        self.payments = PaymentsAPI(client)
        self.config = ConfigAPI(client)
        self.mpesa = MpesaAPI(client)
        self.equity_bank = EquityBankAPI(client)
        self.maintenance = MaintenanceAPI(client)
        self.expenses = ExpensesAPI(client)
        self.reports = ReportsAPI(client)
        self.activity_logs = ActivityLogsAPI(client)
        self.auth = AuthAPI(client)
