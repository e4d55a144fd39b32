from userstore.services.user_store import UserStore


def assert_indexes_consistent(store: UserStore):
    """Email and role indexes agree with the user table in both directions"""
    users = {user.id: user for user in store.get_all_users()}

    email_index = store.email_index
    assert len(email_index) == len(users)
    for email, user_id in email_index.items():
        assert user_id in users
        assert users[user_id].email == email

    role_index = store.role_index
    for user_id, user in users.items():
        buckets = [role for role, ids in role_index.items() if user_id in ids]
        assert buckets == [user.role.value]
