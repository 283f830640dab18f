"""Cart Schemas - persisted cart items and checkout outcomes."""

from pydantic import BaseModel, Field


class CartItem(BaseModel):
    """Snapshot of an event at the time it was added to the cart.

    The capacity figures are display-only; checkout re-reads the live event.
    """
    event_id: str
    title: str
    date: str
    time: str = ""
    location: str = ""
    campus: str = ""
    category: str = ""
    capacity: int
    registered: int
    available: int


class CheckoutOutcome(BaseModel):
    event_id: str
    title: str
    success: bool
    registration_id: str | None = None
    error_code: str | None = None
    message: str | None = None


class CheckoutResult(BaseModel):
    outcomes: list[CheckoutOutcome] = Field(default_factory=list)

    @property
    def succeeded(self) -> list[CheckoutOutcome]:
        return [o for o in self.outcomes if o.success]

    @property
    def failed(self) -> list[CheckoutOutcome]:
        return [o for o in self.outcomes if not o.success]

    def summary(self) -> str:
        ok = len(self.succeeded)
        message = f"Successfully registered for {ok} event{'' if ok == 1 else 's'}"
        if self.failed:
            message += f", {len(self.failed)} failed"
        return message
