"""Demo dataset inserted on first boot when the users table is empty."""

from .models import UserRole, UserStatus

# Dedicated demo credentials first, then sample users sharing 'password123'.
DEMO_USERS = [
    {
        "name": "Admin User",
        "username": "admin",
        "email": "admin@demo.com",
        "password": "admin123",
        "avatar": "https://i.pravatar.cc/150?u=1",
        "role": UserRole.ADMIN,
        "birth_date": "15/03/1990",
        "phone": "+1234567890",
        "status": UserStatus.ACTIVE,
    },
    {
        "name": "Manager User",
        "username": "manager",
        "email": "manager@demo.com",
        "password": "manager123",
        "avatar": "https://i.pravatar.cc/150?u=2",
        "role": UserRole.MANAGER,
        "birth_date": "22/07/1985",
        "phone": "+1234567891",
        "status": UserStatus.ACTIVE,
    },
    {
        "name": "Regular User",
        "username": "user",
        "email": "user@demo.com",
        "password": "user123",
        "avatar": "https://i.pravatar.cc/150?u=3",
        "role": UserRole.USER,
        "birth_date": "10/12/1992",
        "phone": "+1234567892",
        "status": UserStatus.ACTIVE,
    },
    {
        "name": "John Doe",
        "username": "johndoe",
        "email": "john@example.com",
        "password": "password123",
        "avatar": "https://i.pravatar.cc/150?u=4",
        "role": UserRole.ADMIN,
        "birth_date": "15/03/1990",
        "phone": "+1234567893",
        "status": UserStatus.ACTIVE,
    },
    {
        "name": "Jane Smith",
        "username": "janesmith",
        "email": "jane@example.com",
        "password": "password123",
        "avatar": "https://i.pravatar.cc/150?u=5",
        "role": UserRole.MANAGER,
        "birth_date": "22/07/1985",
        "phone": "+1234567894",
        "status": UserStatus.ACTIVE,
    },
    {
        "name": "Bob Johnson",
        "username": "bobjohnson",
        "email": "bob@example.com",
        "password": "password123",
        "avatar": "https://i.pravatar.cc/150?u=6",
        "role": UserRole.USER,
        "birth_date": "10/12/1992",
        "phone": "+1234567895",
        "status": UserStatus.INACTIVE,
    },
    {
        "name": "Alice Brown",
        "username": "alicebrown",
        "email": "alice@example.com",
        "password": "password123",
        "avatar": "https://i.pravatar.cc/150?u=7",
        "role": UserRole.USER,
        "birth_date": "05/09/1988",
        "phone": "+1234567896",
        "status": UserStatus.ACTIVE,
    },
    {
        "name": "Michael Chen",
        "username": "mchen",
        "email": "michael.chen@example.com",
        "password": "password123",
        "avatar": "https://i.pravatar.cc/150?u=8",
        "role": UserRole.MANAGER,
        "birth_date": "18/11/1987",
        "phone": "+1234567897",
        "status": UserStatus.ACTIVE,
    },
    {
        "name": "Sarah Wilson",
        "username": "swilson",
        "email": "sarah.wilson@example.com",
        "password": "password123",
        "avatar": "https://i.pravatar.cc/150?u=9",
        "role": UserRole.USER,
        "birth_date": "03/06/1993",
        "phone": "+1234567898",
        "status": UserStatus.ACTIVE,
    },
    {
        "name": "David Martinez",
        "username": "dmartinez",
        "email": "david.martinez@example.com",
        "password": "password123",
        "avatar": "https://i.pravatar.cc/150?u=10",
        "role": UserRole.USER,
        "birth_date": "27/02/1991",
        "phone": "+1234567899",
        "status": UserStatus.INACTIVE,
    },
]
