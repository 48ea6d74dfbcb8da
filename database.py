from sqlalchemy import Column, Date, Integer, Numeric, String, UniqueConstraint, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from config import DATABASE_URL

# Database Setup
# Default to local SQLite, but allow override (e.g. Postgres) through DATABASE_URL
engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {},
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

# --- Models ---

class TransactionRecord(Base):
    __tablename__ = "transactions"

    id = Column(String(64), primary_key=True)
    owner_id = Column(String, index=True, nullable=False)
    date = Column(Date, index=True, nullable=False)
    category = Column(String, nullable=False)
    subcategory = Column(String, nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)  # sign lives in `type`
    description = Column(String, default="")
    type = Column(String(16), nullable=False)  # 'income' or 'expense'


class BudgetRecord(Base):
    __tablename__ = "budgets"
    __table_args__ = (UniqueConstraint("owner_id", "category", "month", name="uq_budget_owner_category_month"),)

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(String, index=True, nullable=False)
    category = Column(String, nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    month = Column(String(7), index=True, nullable=False)  # YYYY-MM

# --- Init DB ---
def init_db(bind=None):
    Base.metadata.create_all(bind=bind or engine)

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
