import os
import logging

import mysql.connector
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

# -----------------------------
# MySQL Config (override through env / .env)
# -----------------------------
DB_CONFIG = {
    "host": os.getenv("MINDSPACE_DB_HOST", "localhost"),
    "port": int(os.getenv("MINDSPACE_DB_PORT", 3306)),
    "user": os.getenv("MINDSPACE_DB_USER", "root"),
    "password": os.getenv("MINDSPACE_DB_PASSWORD", ""),
    "database": os.getenv("MINDSPACE_DB_NAME", "mindspace"),
}

DEFAULT_CRISIS_RESOURCES = [
    ("hotline", "988 Suicide & Crisis Lifeline",
     "Free, confidential support for people in distress.",
     "988", "https://988lifeline.org", "24/7", 1),
    ("text", "Crisis Text Line",
     "Text HOME to 741741 to reach a trained crisis counselor.",
     "741741", "https://www.crisistextline.org", "24/7", 2),
    ("emergency", "Emergency Services",
     "Call if you or someone else is in immediate danger.",
     "911", None, "24/7", 3),
]


def ensure_mysql_db():
    """
    Ensure the database exists (connects without 'database' key then creates it).
    """
    cfg = DB_CONFIG.copy()
    db_name = cfg.pop("database", None)
    if not db_name:
        return
    conn = mysql.connector.connect(**cfg)
    cursor = conn.cursor()
    cursor.execute(f"CREATE DATABASE IF NOT EXISTS `{db_name}` DEFAULT CHARACTER SET 'utf8mb4'")
    conn.commit()
    cursor.close()
    conn.close()


def get_connection():
    return mysql.connector.connect(**DB_CONFIG)


# -----------------------------
# Init Tables
# -----------------------------
def init_tables():
    ensure_mysql_db()
    conn = get_connection()
    cursor = conn.cursor()

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS profiles (
            id INT AUTO_INCREMENT PRIMARY KEY,
            user_id VARCHAR(64) UNIQUE NOT NULL,
            full_name VARCHAR(255),
            phone VARCHAR(32),
            emergency_contact VARCHAR(255),
            emergency_phone VARCHAR(32),
            role VARCHAR(20) NOT NULL DEFAULT 'user',
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP ON UPDATE CURRENT_TIMESTAMP
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS risk_assessments (
            id INT AUTO_INCREMENT PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL,
            risk_level VARCHAR(10) NOT NULL,
            assessment_score INT,
            assessment_data JSON NOT NULL,
            chatbot_conversation JSON,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            INDEX idx_assessments_user (user_id)
        )
    """)

    # "sent" alerts are only recorded here, nothing is delivered
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS sms_alerts (
            id INT AUTO_INCREMENT PRIMARY KEY,
            recipient_phone VARCHAR(64) NOT NULL,
            message TEXT NOT NULL,
            alert_type VARCHAR(40) NOT NULL,
            delivery_status VARCHAR(20) DEFAULT 'pending',
            sent_by VARCHAR(64),
            sent_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            INDEX idx_alerts_type (alert_type)
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS crisis_resources (
            id INT AUTO_INCREMENT PRIMARY KEY,
            resource_type VARCHAR(30) NOT NULL,
            title VARCHAR(255) NOT NULL,
            description TEXT,
            phone_number VARCHAR(32),
            website_url VARCHAR(255),
            available_hours VARCHAR(64),
            priority_order INT DEFAULT 0,
            is_active BOOLEAN DEFAULT TRUE
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS chat_logs (
            id INT AUTO_INCREMENT PRIMARY KEY,
            user_id VARCHAR(64),
            message TEXT,
            sentiment_score FLOAT,
            sentiment_label VARCHAR(20),
            screen_level VARCHAR(10),
            suggestion TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    cursor.execute("SELECT COUNT(*) FROM crisis_resources")
    (count,) = cursor.fetchone()
    if not count:
        cursor.executemany(
            """INSERT INTO crisis_resources
               (resource_type, title, description, phone_number, website_url, available_hours, priority_order)
               VALUES (%s,%s,%s,%s,%s,%s,%s)""",
            DEFAULT_CRISIS_RESOURCES,
        )
        logger.info("Seeded %d crisis resources", len(DEFAULT_CRISIS_RESOURCES))

    conn.commit()
    cursor.close()
    conn.close()
