#!/usr/bin/env python
"""
Create a sample shop.sqlite database (Customers, Orders) for trying the shell.

Run with: python -m scripts.create_sample_db
Then:     askdb data/shop.sqlite
"""

import random
import sqlite3
from datetime import datetime, timedelta
from pathlib import Path

CITIES = ["Berlin", "London", "Madrid", "Paris", "Seattle", "Tokyo"]
FIRST = ["Ana", "Ben", "Chloe", "Dev", "Eli", "Fatima", "Goran", "Hana", "Ivan", "Jun"]
LAST = ["Lopez", "Smith", "Ng", "Patel", "Okafor", "Schmidt", "Rossi", "Kim"]


def create_sample_database(db_path: Path = None) -> Path:
    db_path = db_path or Path(__file__).resolve().parents[1] / "data" / "shop.sqlite"
    db_path.parent.mkdir(parents=True, exist_ok=True)

    print(f"Creating sample database at: {db_path}")

    conn = sqlite3.connect(str(db_path))
    cursor = conn.cursor()
    cursor.executescript("""
        DROP TABLE IF EXISTS Orders;
        DROP TABLE IF EXISTS Customers;
        CREATE TABLE Customers (
            Id INTEGER PRIMARY KEY AUTOINCREMENT,
            Name TEXT NOT NULL,
            Email TEXT,
            City TEXT
        );
        CREATE TABLE Orders (
            Id INTEGER PRIMARY KEY AUTOINCREMENT,
            CustomerId INTEGER NOT NULL REFERENCES Customers(Id),
            OrderDate TEXT NOT NULL,
            Total REAL NOT NULL
        );
    """)

    customers = []
    for i in range(50):
        name = f"{random.choice(FIRST)} {random.choice(LAST)}"
        email = name.lower().replace(" ", ".") + f"{i}@example.com"
        customers.append((name, email, random.choice(CITIES)))
    cursor.executemany("INSERT INTO Customers (Name, Email, City) VALUES (?, ?, ?)", customers)

    start = datetime(2024, 1, 1)
    orders = []
    for _ in range(500):
        day = start + timedelta(days=random.randint(0, 364))
        orders.append((random.randint(1, len(customers)), day.strftime("%Y-%m-%d"), round(random.uniform(5, 500), 2)))
    cursor.executemany("INSERT INTO Orders (CustomerId, OrderDate, Total) VALUES (?, ?, ?)", orders)

    conn.commit()
    cursor.execute("SELECT COUNT(*) FROM Orders")
    count = cursor.fetchone()[0]
    conn.close()

    print(f"✅ Created {len(customers)} customers and {count:,} orders")
    return db_path


if __name__ == "__main__":
    create_sample_database()
