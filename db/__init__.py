from db.models import Base, KeyValue, NoteAction, Order, OrderNote, OrderStatus

__all__ = ["Base", "KeyValue", "NoteAction", "Order", "OrderNote", "OrderStatus"]
