"""Course domain - educational courses (modules and lessons) and patient progress through them"""
