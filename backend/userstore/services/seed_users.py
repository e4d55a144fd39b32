"""
Baseline and sample accounts created at store initialization
"""
import random
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from userstore.models.user import UserRole


DEFAULT_USERS: List[Dict[str, Any]] = [
    {
        "email": "demo@gearupsports.com",
        "name": "Demo User",
        "password": "demo123",
        "role": UserRole.USER,
        "avatar": "https://images.pexels.com/photos/1239291/pexels-photo-1239291.jpeg?auto=compress&cs=tinysrgb&w=100",
    },
    {
        "email": "admin@gearupsports.com",
        "name": "Admin User",
        "password": "admin123",
        "role": UserRole.ADMIN,
        "avatar": "https://images.pexels.com/photos/1222271/pexels-photo-1222271.jpeg?auto=compress&cs=tinysrgb&w=100",
    },
    {
        "email": "moderator@gearupsports.com",
        "name": "Moderator User",
        "password": "mod123",
        "role": UserRole.MODERATOR,
        "avatar": "https://images.pexels.com/photos/1181686/pexels-photo-1181686.jpeg?auto=compress&cs=tinysrgb&w=100",
    },
]

FIRST_NAMES = ["Arjun", "Priya", "Rahul", "Sneha", "Vikram", "Anita", "Karan", "Meera", "Rohan", "Kavya"]
LAST_NAMES = ["Sharma", "Patel", "Kumar", "Singh", "Gupta", "Joshi", "Reddy", "Nair", "Agarwal", "Mehta"]
MAIL_DOMAINS = ["gmail.com", "yahoo.com", "hotmail.com", "outlook.com"]
SAMPLE_PASSWORD = "user123"


def generate_avatar(name: str) -> str:
    """Initials avatar URL for users without a picture"""
    return f"https://ui-avatars.com/api/?name={quote(name)}&background=random&color=fff&size=100&rounded=true"


def generate_sample_users(count: int, rng: Optional[random.Random] = None) -> List[Dict[str, Any]]:
    """Random regular accounts for local testing; emails are unique per index"""
    rng = rng or random.Random()
    samples = []
    for i in range(count):
        first_name = rng.choice(FIRST_NAMES)
        last_name = rng.choice(LAST_NAMES)
        name = f"{first_name} {last_name}"
        samples.append({
            "email": f"{first_name.lower()}.{last_name.lower()}{i}@{rng.choice(MAIL_DOMAINS)}",
            "name": name,
            "password": SAMPLE_PASSWORD,
            "role": UserRole.USER,
            "avatar": generate_avatar(name),
        })
    return samples
