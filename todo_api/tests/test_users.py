from concurrent.futures import ThreadPoolExecutor


class TestRegister:
    def test_register_hashes_password(self, user_store):
        user_store.register("alice", "correct-horse", "alice@example.com")
        user = user_store.find_by_username("alice")
        assert user["id"] == 1
        assert user["email"] == "alice@example.com"
        assert user["password"] != "correct-horse"
        assert user["password"].startswith("$argon2")

    def test_sequential_ids(self, user_store):
        assert user_store.register("a", "password-a", "a@example.com")["id"] == 1
        assert user_store.register("b", "password-b", "b@example.com")["id"] == 2
        assert user_store.find_by_id(2)["username"] == "b"
        assert user_store.find_by_id(3) is None

    def test_duplicate_username_returns_none(self, user_store):
        first = user_store.register("alice", "first-password", "alice@example.com")
        assert user_store.register("alice", "second-password", "other@example.com") is None

        stored = user_store.find_by_username("alice")
        assert stored == first
        assert user_store.verify_password(stored, "first-password") is True
        assert user_store.verify_password(stored, "second-password") is False

    def test_concurrent_registration_of_same_username(self, user_store):
        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(
                pool.map(lambda i: user_store.register("race", f"password-{i}", "r@example.com"), range(8))
            )
        assert sum(r is not None for r in results) == 1
        assert user_store.exists_by_username("race") is True


class TestCredentials:
    def test_verify_password(self, user_store):
        user = user_store.register("alice", "correct-horse", "alice@example.com")
        assert user_store.verify_password(user, "correct-horse") is True
        assert user_store.verify_password(user, "Correct-horse") is False

    def test_verify_password_with_corrupt_hash(self, user_store):
        user = user_store.register("alice", "correct-horse", "alice@example.com")
        user["password"] = "not-a-hash"
        assert user_store.verify_password(user, "correct-horse") is False

    def test_authenticate(self, user_store):
        user_store.register("alice", "correct-horse", "alice@example.com")
        assert user_store.authenticate("alice", "correct-horse")["id"] == 1
        assert user_store.authenticate("alice", "wrong") is None
        assert user_store.authenticate("nobody", "correct-horse") is None

    def test_lookups_return_copies(self, user_store):
        user_store.register("alice", "correct-horse", "alice@example.com")
        user_store.find_by_username("alice")["email"] = "changed@example.com"
        assert user_store.find_by_id(1)["email"] == "alice@example.com"
