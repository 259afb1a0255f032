from datamerge import Dataset, MergeRequest, merge_results

from datamerge.tests import DATA_DIR

people = Dataset.from_csv(DATA_DIR / "people.csv", label="people")
subs = Dataset.from_csv(DATA_DIR / "subscriptions.csv", connection_id="billing")

req = MergeRequest(people, subs, left_key="id", right_key="person_id", merge_type="full", max_rows=3)

print(req)
print(merge_results(req))  # preview of the first 3 rows, stats cover all of them
