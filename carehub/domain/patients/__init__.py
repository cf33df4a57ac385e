"""Patient domain - a doctor's patient list, dashboard stats and the patient's own profile"""
