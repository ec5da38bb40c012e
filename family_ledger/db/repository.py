from datetime import datetime

from tinydb import Query, TinyDB

from family_ledger.models.schemas import Category, Expense, Member, Role, User
from family_ledger.utils.dates import now_local


class ExpenseRepository:
    def __init__(self, db_path: str = "family_ledger.json", **kwargs):
        self.db = TinyDB(db_path, **kwargs)
        self.expenses = self.db.table("expenses")
        self.users = self.db.table("users")
        self.members = self.db.table("members")

    # ── Users and roles ─────────────────────────────────────────────

    def upsert_user(self, user_id: str, display_name: str | None = None) -> User:
        U = Query()
        user = User(user_id=user_id, display_name=display_name)
        if display_name is None:
            existing = self.users.get(U.user_id == user_id)
            if existing is not None:
                return User(**existing)
            self.users.insert(user.model_dump())
            return user
        self.users.upsert(user.model_dump(), U.user_id == user_id)
        return user

    def get_user(self, user_id: str) -> User | None:
        U = Query()
        doc = self.users.get(U.user_id == user_id)
        return User(**doc) if doc is not None else None

    def bind_role(
        self, user_id: str, group_id: str, role: Role, display_name: str | None = None
    ) -> Member:
        M = Query()
        member = Member(
            user_id=user_id, group_id=group_id, role=role, display_name=display_name
        )
        self.members.upsert(
            member.model_dump(), (M.user_id == user_id) & (M.group_id == group_id)
        )
        if display_name is not None:
            self.upsert_user(user_id, display_name)
        return member

    def get_member(self, user_id: str, group_id: str) -> Member | None:
        M = Query()
        doc = self.members.get((M.user_id == user_id) & (M.group_id == group_id))
        return Member(**doc) if doc is not None else None

    def is_parent(self, user_id: str, group_id: str) -> bool:
        member = self.get_member(user_id, group_id)
        return member is not None and member.role == "parent"

    def display_name(self, user_id: str) -> str | None:
        user = self.get_user(user_id)
        return user.display_name if user else None

    # ── Expenses ────────────────────────────────────────────────────

    def _to_expense(self, doc) -> Expense:
        return Expense(id=doc.doc_id, **doc)

    def create_expense(
        self,
        user_id: str,
        amount: int,
        category: Category,
        note: str = "",
        group_id: str | None = None,
        display_name: str | None = None,
        created_at: datetime | None = None,
    ) -> Expense:
        self.upsert_user(user_id, display_name)
        expense = Expense(
            user_id=user_id,
            group_id=group_id,
            amount=amount,
            category=category,
            note=note,
            created_at=created_at or now_local(),
        )
        data = expense.model_dump(mode="json")
        data.pop("id", None)
        expense.id = self.expenses.insert(data)
        return expense

    def get(self, id: int) -> Expense | None:
        doc = self.expenses.get(doc_id=id)
        if doc is None:
            return None
        return self._to_expense(doc)

    def delete(self, id: int) -> bool:
        if not self.expenses.contains(doc_id=id):
            return False
        self.expenses.remove(doc_ids=[id])
        return True

    def update_amount(self, id: int, amount: int) -> Expense | None:
        if not self.expenses.contains(doc_id=id):
            return None
        self.expenses.update({"amount": amount}, doc_ids=[id])
        return self.get(id)

    def _sorted(self, docs) -> list[Expense]:
        expenses = [self._to_expense(doc) for doc in docs]
        expenses.sort(key=lambda e: (e.created_at, e.id))
        return expenses

    def query_expenses(self, user_id: str, start: datetime, end: datetime) -> list[Expense]:
        """The user's expenses in ``[start, end)``, oldest first."""
        E = Query()
        docs = self.expenses.search(
            (E.user_id == user_id)
            & E.created_at.test(lambda ts: start <= datetime.fromisoformat(ts) < end)
        )
        return self._sorted(docs)

    def last_expense(self, user_id: str, category: Category | None = None) -> Expense | None:
        E = Query()
        cond = E.user_id == user_id
        if category is not None:
            cond &= E.category == category
        expenses = self._sorted(self.expenses.search(cond))
        return expenses[-1] if expenses else None

    def delete_last_expense(
        self, user_id: str, category: Category | None = None
    ) -> Expense | None:
        last = self.last_expense(user_id, category)
        if last is None:
            return None
        self.delete(last.id)
        return last

    # ── Group settlement ────────────────────────────────────────────

    def get_unconfirmed(self, group_id: str) -> list[Expense]:
        E = Query()
        docs = self.expenses.search(
            (E.group_id == group_id) & (E.confirmed_at == None)  # noqa: E711
        )
        return self._sorted(docs)

    def confirm_expenses(self, group_id: str, target_name: str | None = None) -> int:
        """Mark the group's unconfirmed expenses as paid; optionally only one member's."""
        pending = self.get_unconfirmed(group_id)
        if target_name:
            wanted = target_name.casefold()
            pending = [
                e for e in pending
                if (self.display_name(e.user_id) or "").casefold() == wanted
            ]
        if not pending:
            return 0
        now = now_local().isoformat()
        self.expenses.update({"confirmed_at": now}, doc_ids=[e.id for e in pending])
        return len(pending)

    def mark_received(self, user_id: str, group_id: str) -> int:
        """Acknowledge payment for the user's confirmed group expenses."""
        E = Query()
        docs = self.expenses.search(
            (E.user_id == user_id)
            & (E.group_id == group_id)
            & (E.confirmed_at != None)  # noqa: E711
            & (E.received_at == None)  # noqa: E711
        )
        if not docs:
            return 0
        now = now_local().isoformat()
        self.expenses.update({"received_at": now}, doc_ids=[doc.doc_id for doc in docs])
        return len(docs)

    def ping(self) -> bool:
        self.expenses.count(Query().noop())
        return True

    def close(self) -> None:
        self.db.close()
