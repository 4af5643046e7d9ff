"""Database models for the business data store (clients, orders, products, inventory)."""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from opsdesk.core.database import DataBase as Base


class Client(Base):
    """Customer record."""

    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    customer_type = Column(String, nullable=True)  # 'retail', 'wholesale', ...
    created_at = Column(DateTime, default=datetime.now)

    orders = relationship("Order", back_populates="client")


class Order(Base):
    """Customer order."""

    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=True, index=True)
    status = Column(String, nullable=False, default="pending")
    total = Column(Float, nullable=False, default=0.0)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    client = relationship("Client", back_populates="orders")


class Product(Base):
    """Catalog product."""

    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    category = Column(String, nullable=True)
    price = Column(Float, nullable=False, default=0.0)
    cost = Column(Float, nullable=True)
    created_at = Column(DateTime, default=datetime.now)

    stock = relationship("InventoryItem", back_populates="product")


class InventoryItem(Base):
    """Stock level for a product."""

    __tablename__ = "inventory"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=True, index=True)
    quantity = Column(Integer, nullable=False, default=0)
    min_stock = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    product = relationship("Product", back_populates="stock")
